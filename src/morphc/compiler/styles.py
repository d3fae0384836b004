"""Class-name scoping for component style sections."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Mapping

from morphc.core.config import DEFAULT_SCOPED_NAME_PATTERN, HashMode

from .errors import ErrorCode, ParserUnavailableError
from .hashing import short_hash
from .models import Diagnostic, ScopedClass, ScopedStyle, SourceLocation
from .treesitter import GrammarLoader, ParsedSource, iter_nodes

__all__ = [
    "StyleScoper",
    "rewrite_template_classes",
    "scoped_name",
    "used_style_variables",
]

_LANGUAGE = "css"

_CLASS_TOKEN = re.compile(r"\.([a-zA-Z_-][a-zA-Z0-9_-]*)(?![A-Za-z0-9_-])")
_FALLBACK_SELECTOR = re.compile(r"([^{};]+)\{")
_CSS_VARIABLE = re.compile(r"var\(\s*(--[A-Za-z0-9_-]+)")
_CLASS_ATTRIBUTE = re.compile(
    r"(?<![\w-])(class\s*=\s*)(?:([\"'])(.*?)\2|(\{\{.*?\}\}|[^\s>\"'=]+))",
    re.DOTALL | re.IGNORECASE,
)
_PLACEHOLDER_SPLIT = re.compile(r"(\{\{.*?\}\})", re.DOTALL)
_CLASS_WORD = re.compile(r"\S+")


@dataclass(frozen=True, slots=True)
class _ClassSpan:
    """Character range of one class name (without its dot)."""

    local: str
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class _SelectorRegion:
    """Character range of one selector list and the rule that owns it."""

    start: int
    end: int
    text: str
    rule_content: str
    classes: tuple[_ClassSpan, ...] = ()


def scoped_name(
    pattern: str,
    *,
    component: str,
    local: str,
    hash_value: str,
) -> str:
    """Fill the first ``[name]``, ``[local]`` and ``[hash:base64:5]`` tokens.

    Example:
        >>> scoped_name("[name]_[local]_[hash:base64:5]",
        ...             component="Card", local="title", hash_value="abc12")
        'Card_title_abc12'
    """

    return (
        pattern.replace("[name]", component, 1)
        .replace("[local]", local, 1)
        .replace("[hash:base64:5]", hash_value, 1)
    )


def used_style_variables(css: str) -> tuple[str, ...]:
    """Return the custom properties read through ``var()``, first-seen order.

    Example:
        >>> used_style_variables("a{color:var(--fg);b:var( --bg, red);c:var(--fg)}")
        ('--fg', '--bg')
    """

    seen: dict[str, None] = {}
    for match in _CSS_VARIABLE.finditer(css):
        seen.setdefault(match.group(1), None)
    return tuple(seen)


def rewrite_template_classes(markup: str, exports: Mapping[str, str]) -> str:
    """Swap class tokens in ``class`` attributes for their scoped names.

    Placeholder segments and classes missing from ``exports`` stay as written.

    Example:
        >>> rewrite_template_classes('<p class="a {{ x }} b">', {"a": "C_a_1"})
        '<p class="C_a_1 {{ x }} b">'
    """

    if not exports:
        return markup

    def _swap_word(match: re.Match[str]) -> str:
        word = match.group(0)
        return exports.get(word, word)

    def _swap_value(value: str) -> str:
        parts = _PLACEHOLDER_SPLIT.split(value)
        for index in range(0, len(parts), 2):
            parts[index] = _CLASS_WORD.sub(_swap_word, parts[index])
        return "".join(parts)

    def _swap_attribute(match: re.Match[str]) -> str:
        prefix, quote = match.group(1), match.group(2)
        if quote is None:
            return f"{prefix}{_swap_value(match.group(4))}"
        return f"{prefix}{quote}{_swap_value(match.group(3))}{quote}"

    return _CLASS_ATTRIBUTE.sub(_swap_attribute, markup)


class StyleScoper:
    """Scope the classes of one style section to its component.

    A scoper is created per compilation; nothing is shared between documents.
    """

    def __init__(
        self,
        *,
        pattern: str = DEFAULT_SCOPED_NAME_PATTERN,
        hash_mode: HashMode = HashMode.DEVELOPMENT,
        loader: GrammarLoader | None = None,
    ) -> None:
        self._pattern = pattern
        self._hash_mode = HashMode(hash_mode)
        self._loader = loader

    def scope(self, style_text: str, component_name: str) -> ScopedStyle:
        """Return rewritten CSS and the scoped class map for ``style_text``."""

        diagnostics: list[Diagnostic] = []
        regions = self._regions(style_text, diagnostics)

        classes: dict[str, ScopedClass] = {}
        used_names: dict[str, str] = {}
        for region in regions:
            if not region.text.lstrip().startswith("."):
                continue
            for span in region.classes:
                local = span.local
                if local in classes:
                    continue
                name = self._scoped_name(component_name, local, region.rule_content)
                if name in used_names:
                    name = self._disambiguate(name, used_names)
                    location = SourceLocation.from_offset(style_text, span.start - 1)
                    diagnostics.append(
                        Diagnostic(
                            code=ErrorCode.SCOPED_NAME_COLLISION,
                            message=(
                                f"Scoped name for .{local} collides with another "
                                f"class; using {name!r}"
                            ),
                            line=location.line,
                            column=location.column,
                            offset=location.offset,
                        )
                    )
                used_names[name] = local
                classes[local] = ScopedClass(
                    original=local,
                    scoped_name=name,
                    rule_content=region.rule_content,
                )

        css = self._rewrite(style_text, regions, classes)
        return ScopedStyle(css=css, classes=classes, diagnostics=tuple(diagnostics))

    def _scoped_name(self, component: str, local: str, rule_content: str) -> str:
        if self._hash_mode is HashMode.PRODUCTION:
            hash_value = short_hash(rule_content)
        else:
            hash_value = short_hash(f"{component}_{local}")
        return scoped_name(
            self._pattern,
            component=component,
            local=local,
            hash_value=hash_value,
        )

    @staticmethod
    def _disambiguate(name: str, used_names: Mapping[str, str]) -> str:
        suffix = 2
        while f"{name}_{suffix}" in used_names:
            suffix += 1
        return f"{name}_{suffix}"

    def _regions(
        self, style_text: str, diagnostics: list[Diagnostic]
    ) -> list[_SelectorRegion]:
        masked = _mask_literals(style_text)
        if self._loader is None:
            diagnostics.append(
                Diagnostic(
                    code=ErrorCode.STYLE_RULE_PARSE_WARNING,
                    message="CSS grammar not configured; classes scanned by pattern",
                )
            )
            return _fallback_regions(style_text, masked, 0, len(style_text))
        try:
            # String bodies and comments are blanked so their text never reaches
            # the grammar as selectors or blocks.
            parsed = self._loader.parse(_LANGUAGE, masked)
        except ParserUnavailableError as exc:
            diagnostics.append(
                Diagnostic(
                    code=ErrorCode.STYLE_RULE_PARSE_WARNING,
                    message=f"{exc.message}; classes scanned by pattern",
                )
            )
            return _fallback_regions(style_text, masked, 0, len(style_text))

        regions = _tree_regions(parsed, style_text)
        for error in _error_nodes(parsed.root):
            start, end = parsed.char_span(error)
            location = SourceLocation.from_offset(style_text, start)
            diagnostics.append(
                Diagnostic(
                    code=ErrorCode.STYLE_RULE_PARSE_WARNING,
                    message="Unparseable CSS region; classes scanned by pattern",
                    line=location.line,
                    column=location.column,
                    offset=location.offset,
                )
            )
            regions.extend(_fallback_regions(style_text, masked, start, end))
        regions.sort(key=lambda region: region.start)
        return regions

    @staticmethod
    def _rewrite(
        style_text: str,
        regions: list[_SelectorRegion],
        classes: Mapping[str, ScopedClass],
    ) -> str:
        if not classes:
            return style_text

        spans = sorted(
            {span for region in regions for span in region.classes},
            key=lambda span: span.start,
        )
        pieces: list[str] = []
        cursor = 0
        for span in spans:
            item = classes.get(span.local)
            if item is None or span.start < cursor:
                continue
            pieces.append(style_text[cursor : span.start])
            pieces.append(item.scoped_name)
            cursor = span.end
        pieces.append(style_text[cursor:])
        return "".join(pieces)


def _mask_literals(css: str) -> str:
    """Blank string bodies and whole comments, keeping every offset."""

    chars = list(css)
    length = len(css)

    def _blank(start: int, end: int) -> None:
        for position in range(start, min(end, length)):
            if chars[position] != "\n":
                chars[position] = " "

    index = 0
    while index < length:
        char = css[index]
        if css.startswith("/*", index):
            close = css.find("*/", index + 2)
            if close == -1:
                _blank(index, length)
                break
            _blank(index, close + 2)
            index = close + 2
        elif char in "\"'":
            position = index + 1
            while position < length and css[position] not in (char, "\n"):
                position += 2 if css[position] == "\\" else 1
            position = min(position, length)
            _blank(index + 1, position)
            if position < length and css[position] == char:
                position += 1
            index = position
        else:
            index += 1
    return "".join(chars)


def _tree_regions(parsed: ParsedSource, style_text: str) -> list[_SelectorRegion]:
    regions: list[_SelectorRegion] = []
    for node in iter_nodes(parsed.root):
        if node.type != "rule_set" or _inside_error(node):
            continue
        selectors = _first_named(node, "selectors")
        if selectors is None:
            continue
        start, end = parsed.char_span(selectors)
        rule_start, rule_end = parsed.char_span(node)
        spans: list[_ClassSpan] = []
        for child in iter_nodes(selectors):
            if child.type != "class_name":
                continue
            name_start, name_end = parsed.char_span(child)
            spans.append(
                _ClassSpan(
                    local=style_text[name_start:name_end],
                    start=name_start,
                    end=name_end,
                )
            )
        regions.append(
            _SelectorRegion(
                start=start,
                end=end,
                text=style_text[start:end],
                rule_content=style_text[rule_start:rule_end],
                classes=tuple(spans),
            )
        )
    return regions


def _fallback_regions(
    text: str, masked: str, start: int, end: int
) -> list[_SelectorRegion]:
    regions: list[_SelectorRegion] = []
    for match in _FALLBACK_SELECTOR.finditer(masked, start, end):
        raw = match.group(1)
        if not raw.strip() or raw.lstrip().startswith("@"):
            continue
        region_start = match.start(1) + len(raw) - len(raw.lstrip())
        region_end = match.start(1) + len(raw.rstrip())
        selector = text[region_start:region_end]
        spans = tuple(
            _ClassSpan(local=token.group(1), start=token.start(1), end=token.end(1))
            for token in _CLASS_TOKEN.finditer(masked, region_start, region_end)
        )
        regions.append(
            _SelectorRegion(
                start=region_start,
                end=region_end,
                text=selector,
                rule_content=selector,
                classes=spans,
            )
        )
    return regions


def _error_nodes(node: Any) -> list[Any]:
    """Return the outermost ``ERROR`` nodes below ``node``."""

    if node.type == "ERROR":
        return [node]
    found: list[Any] = []
    for child in node.children:
        found.extend(_error_nodes(child))
    return found


def _inside_error(node: Any) -> bool:
    parent = node.parent
    while parent is not None:
        if parent.type == "ERROR":
            return True
        parent = parent.parent
    return False


def _first_named(node: Any, node_type: str) -> Any | None:
    for child in node.named_children:
        if child.type == node_type:
            return child
    return None
