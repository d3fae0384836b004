"""Section extraction: split a component document into its four parts."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import PurePath
import re
from typing import Any

from .errors import ErrorCode, MissingTemplateError, StructuredDataParseError
from .hashing import content_hash
from .jsonish import loads_jsonish
from .markup import Comment, Element, MarkupNode, Text, iter_elements, parse_markup
from .models import ComponentDocument, Diagnostic, SourceLocation
from .treesitter import GrammarLoader

__all__ = [
    "ExtractedSections",
    "derive_component_name",
    "extract_sections",
    "has_meaningful_content",
]

_SCRIPT_KINDS = frozenset(
    {
        "",
        "script",
        "module",
        "text/javascript",
        "application/javascript",
        "text/ecmascript",
        "application/ecmascript",
    }
)
_EMPTY_SKELETONS = frozenset({"", "<html><head></head><body></body></html>"})
_COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)
_DEFAULT_COMPONENT_NAME = "component"


@dataclass(frozen=True, slots=True)
class ExtractedSections:
    """Section extractor output: the document plus non-fatal diagnostics."""

    document: ComponentDocument
    diagnostics: tuple[Diagnostic, ...] = ()


def derive_component_name(source_path: str) -> str:
    """Return the component name for ``source_path`` (its file stem).

    Example:
        >>> derive_component_name("src/components/Button.morph")
        'Button'
        >>> derive_component_name("")
        'component'
    """

    if not source_path:
        return _DEFAULT_COMPONENT_NAME
    stem = PurePath(source_path).name.split(".", 1)[0]
    return stem or _DEFAULT_COMPONENT_NAME


def has_meaningful_content(markup: str) -> bool:
    """Return ``True`` when ``markup`` holds more than comments and whitespace."""

    without_comments = _COMMENT_PATTERN.sub("", markup)
    return bool("".join(without_comments.split()))


def _script_kind(element: Element) -> str:
    return (element.attr("type") or "").strip().lower()


def _is_data_kind(kind: str) -> bool:
    return kind == "json" or kind.endswith("/json") or kind.endswith("+json")


def _unwrap_template(markup: str, nodes: tuple[MarkupNode, ...], offset: int) -> str:
    """Return the inner content when ``markup`` is one ``<template>`` element."""

    significant = [
        node
        for node in nodes
        if not isinstance(node, Comment)
        and not (isinstance(node, Text) and not node.value.strip())
    ]
    if len(significant) != 1:
        return markup
    candidate = significant[0]
    if not isinstance(candidate, Element) or candidate.name != "template":
        return markup
    start = candidate.content_start - offset
    end = candidate.content_end - offset
    if start < 0 or end > len(markup):
        return markup
    return markup[start:end].strip()


class _SectionCollector:
    """Walk the markup tree once, sorting blocks into document sections."""

    def __init__(self, raw_text: str, nodes: tuple[MarkupNode, ...]) -> None:
        self._raw = raw_text
        self._nodes = nodes
        self.script_parts: list[str] = []
        self.data_blocks: list[tuple[str, int]] = []
        self.style_blocks: list[str] = []
        self.removed: list[tuple[int, int]] = []

    def collect(self) -> None:
        for element in iter_elements(self._nodes):
            if element.name == "style":
                self.style_blocks.append(element.text_content())
                self.removed.append((element.start, element.end))
            elif element.name == "script":
                kind = _script_kind(element)
                body = element.text_content()
                if _is_data_kind(kind):
                    self.data_blocks.append((body, element.content_start))
                elif kind in _SCRIPT_KINDS and body.strip():
                    self.script_parts.append(body)
                # Other script kinds are dropped from the template as well.
                self.removed.append((element.start, element.end))

    def remaining_markup(self) -> tuple[str, int]:
        """Return markup with removed blocks cut out, and its leading offset."""

        pieces: list[str] = []
        cursor = 0
        for start, end in sorted(self.removed):
            if start < cursor:
                continue
            pieces.append(self._raw[cursor:start])
            cursor = end
        pieces.append(self._raw[cursor:])
        joined = "".join(pieces)
        leading = len(joined) - len(joined.lstrip())
        return joined.strip(), leading


def _parse_handshake(
    block: str,
    *,
    block_offset: int,
    raw_text: str,
    source_path: str,
) -> Any | None:
    if not block.strip():
        return None
    try:
        return loads_jsonish(block)
    except json.JSONDecodeError as exc:
        location = SourceLocation.from_offset(raw_text, block_offset + exc.pos)
        raise StructuredDataParseError(
            f"Handshake data is not valid JSON: {exc.msg}",
            file_path=source_path,
            location=location,
        ) from exc


def extract_sections(
    raw_text: str,
    *,
    loader: GrammarLoader,
    source_path: str = "",
    compiler_version: str = "0",
) -> ExtractedSections:
    """Split ``raw_text`` into template, script, style and handshake sections.

    Raises:
        MissingTemplateError: No meaningful template and not style-only.
        StructuredDataParseError: The handshake block is not parseable.
        ParserUnavailableError: The HTML grammar cannot be loaded.
    """

    nodes = parse_markup(raw_text, loader=loader)
    collector = _SectionCollector(raw_text, nodes)
    collector.collect()

    diagnostics: list[Diagnostic] = []

    markup, leading = collector.remaining_markup()
    if markup in _EMPTY_SKELETONS:
        markup = ""
    elif not collector.removed:
        markup = _unwrap_template(markup, nodes, leading)
    else:
        reparsed = parse_markup(markup, loader=loader)
        markup = _unwrap_template(markup, reparsed, 0)

    script_text = "\n".join(collector.script_parts) or None

    style_text: str | None = None
    if collector.style_blocks:
        style_text = collector.style_blocks[0]
        if len(collector.style_blocks) > 1:
            diagnostics.append(
                Diagnostic(
                    code=ErrorCode.DUPLICATE_SECTION,
                    message=(
                        f"{len(collector.style_blocks)} <style> blocks found; "
                        "only the first is used"
                    ),
                )
            )

    handshake: Any | None = None
    data_blocks = [item for item in collector.data_blocks if item[0].strip()]
    if data_blocks:
        block, block_offset = data_blocks[0]
        handshake = _parse_handshake(
            block,
            block_offset=block_offset,
            raw_text=raw_text,
            source_path=source_path,
        )
        if len(data_blocks) > 1:
            location = SourceLocation.from_offset(raw_text, data_blocks[1][1])
            diagnostics.append(
                Diagnostic(
                    code=ErrorCode.DUPLICATE_SECTION,
                    message=(
                        "Multiple handshake blocks found; only the first "
                        "is used"
                    ),
                    line=location.line,
                    column=location.column,
                    offset=location.offset,
                )
            )

    meaningful = has_meaningful_content(markup)
    is_style_only = not meaningful and script_text is None and style_text is not None
    if not is_style_only and not meaningful:
        raise MissingTemplateError(
            "No template content found in component document",
            file_path=source_path,
        )

    document = ComponentDocument(
        template_markup="" if is_style_only else markup,
        script_text=script_text,
        style_text=style_text,
        handshake_data=handshake,
        is_style_only=is_style_only,
        source_path=source_path,
        content_hash=content_hash(raw_text, compiler_version=compiler_version),
        component_name=derive_component_name(source_path),
    )
    return ExtractedSections(document=document, diagnostics=tuple(diagnostics))
