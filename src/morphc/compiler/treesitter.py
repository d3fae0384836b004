"""tree-sitter grammar loading and node helpers shared by compiler stages."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Sequence

from .errors import ParserUnavailableError

__all__ = [
    "GrammarLoader",
    "ParsedSource",
    "ts_point_row",
    "ts_point_column",
    "iter_nodes",
]


@dataclass(slots=True)
class _ParserResources:
    """Container for a constructed tree-sitter parser."""

    parser: Any
    language: str


def ts_point_row(point: Any) -> int:
    """Return the row of a tree-sitter point (tuple or ``Point``)."""

    row = getattr(point, "row", None)
    if row is not None:
        return int(row)
    return int(point[0])


def ts_point_column(point: Any) -> int:
    column = getattr(point, "column", None)
    if column is not None:
        return int(column)
    return int(point[1])


def iter_nodes(node: Any) -> Iterator[Any]:
    """Yield ``node`` and every descendant in document order."""

    yield node
    for child in getattr(node, "children", []) or []:
        yield from iter_nodes(child)


@dataclass(slots=True)
class ParsedSource:
    """A parsed tree together with the text it was parsed from.

    tree-sitter reports byte offsets; compiler stages work on ``str`` offsets,
    so the byte→char table is built once per source.
    """

    text: str
    source_bytes: bytes
    tree: Any
    _byte_offsets: Sequence[int] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        offsets = [0]
        total = 0
        for char in self.text:
            total += len(char.encode("utf-8"))
            offsets.append(total)
        self._byte_offsets = offsets

    @property
    def root(self) -> Any:
        return self.tree.root_node

    def char_index(self, byte_offset: int) -> int:
        return max(0, bisect_right(self._byte_offsets, byte_offset) - 1)

    def slice(self, start: int, end: int) -> str:
        return self.source_bytes[start:end].decode("utf-8", errors="ignore")

    def node_text(self, node: Any) -> str:
        return self.slice(node.start_byte, node.end_byte)

    def char_span(self, node: Any) -> tuple[int, int]:
        return self.char_index(node.start_byte), self.char_index(node.end_byte)


class GrammarLoader:
    """Build and memoize tree-sitter parsers for one compiler instance."""

    def __init__(
        self,
        *,
        factory: Callable[[str], Any] | None = None,
    ) -> None:
        self._factory = factory
        self._resources: dict[str, _ParserResources] = {}

    def parser(self, language: str) -> Any:
        """Return a parser for ``language``.

        Raises:
            ParserUnavailableError: If the grammar cannot be constructed.
        """

        resources = self._resources.get(language)
        if resources is None:
            resources = _ParserResources(
                parser=self._build(language),
                language=language,
            )
            self._resources[language] = resources
        return resources.parser

    def parse(self, language: str, text: str) -> ParsedSource:
        """Parse ``text`` with the ``language`` grammar."""

        parser = self.parser(language)
        source_bytes = text.encode("utf-8")
        tree = parser.parse(source_bytes)
        return ParsedSource(text=text, source_bytes=source_bytes, tree=tree)

    def _build(self, language: str) -> Any:
        if self._factory is not None:
            try:
                return self._factory(language)
            except Exception as exc:
                raise ParserUnavailableError(
                    f"tree-sitter parser for {language!r} is unavailable: {exc}",
                    language=language,
                ) from exc

        try:
            from tree_sitter_languages import get_parser  # type: ignore[import]
        except Exception as exc:  # pragma: no cover - dependency missing
            raise ParserUnavailableError(
                "morphc requires tree-sitter grammars (tree_sitter_languages).",
                language=language,
            ) from exc

        try:
            return get_parser(language)
        except Exception as exc:  # pragma: no cover - parser creation failure
            raise ParserUnavailableError(
                f"tree-sitter parser for {language!r} is unavailable: {exc}",
                language=language,
            ) from exc
