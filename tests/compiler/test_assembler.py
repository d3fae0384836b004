"""Tests for module assembly."""

from __future__ import annotations

import base64
import json

from morphc.compiler import (
    ComponentDocument,
    FunctionHelper,
    ScopedStyle,
    TemplateHelper,
    assemble,
)
from morphc.compiler.assembler import ENGINE_MODULE, source_map_comment
from morphc.compiler.models import ParameterShape, ScopedClass
from morphc.core.config import CompileOptions


def _document(**overrides: object) -> ComponentDocument:
    values: dict[str, object] = {
        "template_markup": '<ul class="list">{{ items : row }}</ul>',
        "script_text": "function row(item) { return item; }",
        "style_text": ".list { margin: 0; }",
        "handshake_data": {"items": ["a", "b"]},
        "is_style_only": False,
        "source_path": "List.morph",
        "content_hash": "abc",
        "component_name": "List",
    }
    values.update(overrides)
    return ComponentDocument(**values)  # type: ignore[arg-type]


def _helpers() -> dict[str, FunctionHelper | TemplateHelper]:
    return {
        "row": FunctionHelper(
            name="row",
            parameters=ParameterShape(text="(item)"),
            body_text="{ return item; }",
            source="function row(item) {\n  return item;\n}",
        ),
        "empty": TemplateHelper(name="empty", literal_text='<li class="none">-</li>'),
    }


def _scoped() -> ScopedStyle:
    return ScopedStyle(
        css=".List_list_x1 { margin: 0; }",
        classes={
            "list": ScopedClass(
                original="list",
                scoped_name="List_list_x1",
                rule_content=".list { margin: 0; }",
            )
        },
    )


def test_standard_module_layout() -> None:
    module = assemble(
        _document(),
        template='<ul class="List_list_x1">{{ items : row }}</ul>',
        helpers=_helpers(),
        scoped=_scoped(),
        options=CompileOptions(),
    )
    code = module.code

    assert f"import morph from '{ENGINE_MODULE}';" in code
    assert '  template: "<ul class=\\"List_list_x1\\">{{ items : row }}</ul>",' in code
    assert "    row: function row(item) {\n      return item;\n    }," in code
    assert '    empty: "<li class=\\"none\\">-</li>",' in code
    assert 'export const styles = {\n  "list": "List_list_x1"\n};' in code
    assert code.rstrip().endswith("export default morph.build(template);")
    assert code.index("const template") < code.index("export const styles")

    descriptor = module.descriptor
    assert descriptor is not None
    assert descriptor.handshake == {"items": ["a", "b"]}
    assert list(descriptor.helpers) == ["row", "empty"]


def test_production_mode_drops_handshake() -> None:
    module = assemble(
        _document(),
        template="<p></p>",
        helpers={},
        scoped=None,
        options=CompileOptions(production_mode=True),
    )

    assert module.descriptor is not None
    assert module.descriptor.handshake == {}
    assert "handshake: {}" in module.code
    assert "helpers: {}," in module.code


def test_handshake_can_be_switched_off() -> None:
    module = assemble(
        _document(),
        template="<p></p>",
        helpers={},
        scoped=None,
        options=CompileOptions(include_handshake=False),
    )

    assert module.descriptor is not None
    assert module.descriptor.handshake == {}


def test_missing_handshake_is_empty_object() -> None:
    module = assemble(
        _document(handshake_data=None, style_text=None),
        template="<p></p>",
        helpers={},
        scoped=None,
        options=CompileOptions(),
    )

    assert module.descriptor is not None
    assert module.descriptor.handshake == {}
    assert "export const styles" not in module.code


def test_style_only_module_holds_only_the_styles_export() -> None:
    document = _document(
        template_markup="",
        script_text=None,
        handshake_data=None,
        is_style_only=True,
    )

    module = assemble(
        document, template="", helpers={}, scoped=_scoped(), options=CompileOptions()
    )

    statements = [
        line for line in module.code.splitlines() if line and line[0] not in " }"
    ]
    assert statements == ["export const styles = {"]
    assert module.code.startswith("export const styles = {")
    assert module.code.rstrip().endswith("};")
    assert "//" not in module.code
    assert "import" not in module.code
    assert module.descriptor is None


def test_source_map_comment_is_deterministic() -> None:
    options = CompileOptions(source_maps=True)
    first = assemble(
        _document(), template="<p></p>", helpers={}, scoped=None, options=options
    )
    second = assemble(
        _document(), template="<p></p>", helpers={}, scoped=None, options=options
    )

    assert first.code == second.code
    last_line = first.code.rstrip().splitlines()[-1]
    assert last_line == source_map_comment("List", "List.morph")
    payload = json.loads(base64.b64decode(last_line.rsplit(",", 1)[1]))
    assert payload["sources"] == ["List.morph"]
    assert payload["version"] == 3
