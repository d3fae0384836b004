"""Tolerant reader for hand-authored handshake JSON.

Handshake blocks are written by people, so they routinely carry ``//`` and
``/* */`` comments, single-quoted keys and trailing commas. The pre-pass
removes those while leaving string contents untouched, then defers to
:func:`json.loads`. Removed comments are replaced by spaces (newlines are
kept) so JSON error positions still map onto the original block.
"""

from __future__ import annotations

import json
import re
from typing import Any

__all__ = ["normalize_jsonish", "loads_jsonish"]

_SINGLE_QUOTED_KEY = re.compile(r"'((?:[^'\\\n]|\\.)*)'(\s*:)")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def _blank(text: str) -> str:
    return "".join("\n" if char == "\n" else " " for char in text)


def _strip_comments(text: str) -> str:
    out: list[str] = []
    index = 0
    length = len(text)
    quote: str | None = None
    while index < length:
        char = text[index]
        if quote is not None:
            out.append(char)
            if char == "\\" and index + 1 < length:
                out.append(text[index + 1])
                index += 2
                continue
            if char == quote:
                quote = None
            index += 1
            continue
        if char in {'"', "'"}:
            quote = char
            out.append(char)
            index += 1
            continue
        if text.startswith("//", index):
            end = text.find("\n", index)
            end = length if end == -1 else end
            out.append(_blank(text[index:end]))
            index = end
            continue
        if text.startswith("/*", index):
            end = text.find("*/", index + 2)
            end = length if end == -1 else end + 2
            out.append(_blank(text[index:end]))
            index = end
            continue
        out.append(char)
        index += 1
    return "".join(out)


def _outside_strings(text: str, pattern: re.Pattern[str], repl: Any) -> str:
    """Apply ``pattern`` only to regions outside double-quoted strings."""

    pieces: list[str] = []
    last = 0
    for match in re.finditer(r'"(?:[^"\\]|\\.)*"', text):
        pieces.append(pattern.sub(repl, text[last : match.start()]))
        pieces.append(match.group(0))
        last = match.end()
    pieces.append(pattern.sub(repl, text[last:]))
    return "".join(pieces)


def _requote_key(match: re.Match[str]) -> str:
    key = match.group(1).replace("\\'", "'").replace('"', '\\"')
    return f'"{key}"{match.group(2)}'


def normalize_jsonish(text: str) -> str:
    """Return ``text`` rewritten into strict JSON syntax where possible.

    Example:
        >>> normalize_jsonish("{'a': [1, 2,]}")
        '{"a": [1, 2 ]}'
    """

    stripped = _strip_comments(text)
    requoted = _outside_strings(stripped, _SINGLE_QUOTED_KEY, _requote_key)
    return _outside_strings(requoted, _TRAILING_COMMA, r" \1")


def loads_jsonish(text: str) -> Any:
    """Parse hand-authored JSON.

    Raises:
        json.JSONDecodeError: If the normalized text is still invalid.
    """

    return json.loads(normalize_jsonish(text))
