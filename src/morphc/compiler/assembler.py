"""Module assembly: turn compiled sections into ES module source."""

from __future__ import annotations

import base64
from dataclasses import dataclass
import json
from typing import Any, Mapping

from morphc.core.config import CompileOptions

from .models import (
    ComponentDocument,
    FunctionHelper,
    Helper,
    ModuleDescriptor,
    ScopedStyle,
)

__all__ = [
    "ENGINE_MODULE",
    "AssembledModule",
    "assemble",
    "build_descriptor",
    "source_map_comment",
]

ENGINE_MODULE = "@peter.naydenov/morph"
_INDENT = "  "


@dataclass(frozen=True, slots=True)
class AssembledModule:
    code: str
    descriptor: ModuleDescriptor | None


def _js_string(value: str) -> str:
    return json.dumps(value)


def _js_value(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=True)


def _indent_tail(text: str, prefix: str) -> str:
    """Indent every line of ``text`` but the first."""

    lines = text.split("\n")
    return "\n".join([lines[0], *(prefix + line for line in lines[1:])])


def _helper_source(helper: Helper) -> str:
    if isinstance(helper, FunctionHelper):
        return helper.source
    return _js_string(helper.literal_text)


def build_descriptor(
    document: ComponentDocument,
    *,
    template: str,
    helpers: Mapping[str, Helper],
    options: CompileOptions,
) -> ModuleDescriptor:
    """Return the descriptor handed to the morph engine.

    The handshake is only carried in development builds that ask for it.
    """

    include = (
        document.handshake_data is not None
        and options.include_handshake
        and not options.production_mode
    )
    return ModuleDescriptor(
        template=template,
        helpers=dict(helpers),
        handshake=document.handshake_data if include else {},
    )


def source_map_comment(component_name: str, source_path: str = "") -> str:
    """Return a deterministic inline source-map comment for a component."""

    payload = json.dumps(
        {
            "version": 3,
            "file": f"{component_name}.js",
            "sourceRoot": "",
            "sources": [source_path or f"{component_name}.morph"],
            "names": [],
            "mappings": "",
        },
        separators=(",", ":"),
    )
    encoded = base64.b64encode(payload.encode("utf-8")).decode("ascii")
    return f"//# sourceMappingURL=data:application/json;base64,{encoded}"


def _header(document: ComponentDocument) -> str:
    origin = document.source_path or f"{document.component_name}.morph"
    return f"// Generated by morphc from {origin}. Do not edit."


def _styles_export(exports: Mapping[str, str]) -> str:
    return f"export const styles = {_js_value(dict(exports))};"


def _descriptor_source(descriptor: ModuleDescriptor) -> str:
    lines = ["const template = {"]
    lines.append(f"{_INDENT}template: {_js_string(descriptor.template)},")
    if descriptor.helpers:
        lines.append(f"{_INDENT}helpers: {{")
        for name, helper in descriptor.helpers.items():
            source = _indent_tail(_helper_source(helper), _INDENT * 2)
            lines.append(f"{_INDENT * 2}{name}: {source},")
        lines.append(f"{_INDENT}}},")
    else:
        lines.append(f"{_INDENT}helpers: {{}},")
    handshake = _indent_tail(_js_value(descriptor.handshake), _INDENT)
    lines.append(f"{_INDENT}handshake: {handshake}")
    lines.append("};")
    return "\n".join(lines)


def assemble(
    document: ComponentDocument,
    *,
    template: str,
    helpers: Mapping[str, Helper],
    scoped: ScopedStyle | None,
    options: CompileOptions,
) -> AssembledModule:
    """Generate module source for ``document``.

    Style-only documents become a single ``styles`` export; everything else
    declares the descriptor and exports ``morph.build(template)`` as default.
    Output depends only on the arguments.
    """

    exports = scoped.exports if scoped is not None else {}

    if document.is_style_only:
        parts = [_styles_export(exports)]
        descriptor = None
    else:
        descriptor = build_descriptor(
            document, template=template, helpers=helpers, options=options
        )
        parts = [_header(document)]
        parts.append(f"import morph from '{ENGINE_MODULE}';")
        parts.append(_descriptor_source(descriptor))
        if document.style_text is not None:
            parts.append(_styles_export(exports))
        parts.append("export default morph.build(template);")

    if options.source_maps:
        parts.append(
            source_map_comment(document.component_name, document.source_path)
        )
    return AssembledModule(code="\n\n".join(parts) + "\n", descriptor=descriptor)
