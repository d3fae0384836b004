"""Tagged markup tree built from the tree-sitter HTML grammar.

The raw tree-sitter nodes are converted once into three small variants so the
section extractor can reason about ``Element``/``Text``/``Comment`` values
instead of probing arbitrary node properties. Offsets are character offsets
into the parsed text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from .treesitter import GrammarLoader, ParsedSource

__all__ = [
    "Attribute",
    "Element",
    "Text",
    "Comment",
    "MarkupNode",
    "parse_markup",
    "iter_elements",
]

_ELEMENT_NODES = frozenset({"element", "script_element", "style_element"})
_TEXT_NODES = frozenset({"text", "raw_text", "entity"})
_SKIPPED_NODES = frozenset({"doctype", "erroneous_end_tag", "end_tag"})


@dataclass(frozen=True, slots=True)
class Attribute:
    name: str
    value: str | None


@dataclass(frozen=True, slots=True)
class Text:
    value: str
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class Comment:
    value: str
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class Element:
    """An element with its attributes and converted children.

    ``start``/``end`` cover the whole element including its tags;
    ``content_start``/``content_end`` cover only what sits between them.
    """

    name: str
    attrs: tuple[Attribute, ...]
    children: tuple["MarkupNode", ...]
    start: int
    end: int
    content_start: int
    content_end: int

    def attr(self, name: str) -> str | None:
        """Return the value of attribute ``name`` (case-insensitive)."""

        wanted = name.lower()
        for attribute in self.attrs:
            if attribute.name.lower() == wanted:
                return attribute.value if attribute.value is not None else ""
        return None

    def has_attr(self, name: str) -> bool:
        wanted = name.lower()
        return any(attribute.name.lower() == wanted for attribute in self.attrs)

    def text_content(self) -> str:
        """Concatenate the direct text children of the element."""

        return "".join(
            child.value for child in self.children if isinstance(child, Text)
        )


MarkupNode = Element | Text | Comment


def iter_elements(nodes: tuple[MarkupNode, ...]) -> Iterator[Element]:
    """Yield every element in ``nodes`` depth-first, in document order."""

    for node in nodes:
        if isinstance(node, Element):
            yield node
            yield from iter_elements(node.children)


def parse_markup(text: str, *, loader: GrammarLoader) -> tuple[MarkupNode, ...]:
    """Parse ``text`` permissively and return its top-level nodes."""

    parsed = loader.parse("html", text)
    return _TreeBuilder(parsed).build()


class _TreeBuilder:
    def __init__(self, parsed: ParsedSource) -> None:
        self._parsed = parsed

    def build(self) -> tuple[MarkupNode, ...]:
        return tuple(self._convert_children(self._parsed.root))

    def _convert_children(self, node: Any) -> Iterator[MarkupNode]:
        for child in node.named_children:
            yield from self._convert(child)

    def _convert(self, node: Any) -> Iterator[MarkupNode]:
        node_type = node.type
        if node_type in _ELEMENT_NODES:
            yield self._element(node)
        elif node_type in _TEXT_NODES:
            start, end = self._parsed.char_span(node)
            yield Text(value=self._parsed.node_text(node), start=start, end=end)
        elif node_type == "comment":
            start, end = self._parsed.char_span(node)
            raw = self._parsed.node_text(node)
            body = raw.removeprefix("<!--").removesuffix("-->")
            yield Comment(value=body, start=start, end=end)
        elif node_type == "self_closing_tag":
            yield self._element(node)
        elif node_type in _SKIPPED_NODES:
            return
        else:
            # ERROR and unknown wrappers: keep whatever parsed inside them.
            yield from self._convert_children(node)

    def _element(self, node: Any) -> Element:
        if node.type == "self_closing_tag":
            start_tag = node
        else:
            start_tag = _first_child(node, {"start_tag", "self_closing_tag"})
        end_tag = _first_child(node, {"end_tag"})

        name = ""
        attrs: tuple[Attribute, ...] = ()
        if start_tag is not None:
            tag_name = _first_child(start_tag, {"tag_name"})
            if tag_name is not None:
                name = self._parsed.node_text(tag_name).lower()
            attrs = tuple(
                self._attribute(child)
                for child in start_tag.named_children
                if child.type == "attribute"
            )

        start, end = self._parsed.char_span(node)
        if start_tag is not None and start_tag is not node:
            content_start = self._parsed.char_index(start_tag.end_byte)
        else:
            content_start = end
        if end_tag is not None:
            content_end = self._parsed.char_index(end_tag.start_byte)
        else:
            content_end = end
        content_end = max(content_start, content_end)

        children: tuple[MarkupNode, ...] = ()
        if node.type != "self_closing_tag":
            children = tuple(
                converted
                for child in node.named_children
                if child.type not in {"start_tag", "self_closing_tag", "end_tag"}
                for converted in self._convert(child)
            )

        return Element(
            name=name,
            attrs=attrs,
            children=children,
            start=start,
            end=end,
            content_start=content_start,
            content_end=content_end,
        )

    def _attribute(self, node: Any) -> Attribute:
        name_node = _first_child(node, {"attribute_name"})
        name = self._parsed.node_text(name_node) if name_node is not None else ""
        value: str | None = None
        for child in node.named_children:
            if child.type == "attribute_value":
                value = self._parsed.node_text(child)
            elif child.type == "quoted_attribute_value":
                inner = _first_child(child, {"attribute_value"})
                if inner is not None:
                    value = self._parsed.node_text(inner)
                else:
                    value = self._parsed.node_text(child)[1:-1]
        return Attribute(name=name, value=value)


def _first_child(node: Any, types: set[str]) -> Any | None:
    for child in node.children:
        if child.type in types:
            return child
    return None
