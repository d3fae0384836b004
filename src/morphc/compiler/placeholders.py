"""Placeholder validation and action parsing for template markup.

A placeholder has the shape ``{{ dataPath : action, action : outputName }}``.
Segments are separated by ``:``; the first is the data path, the last (when
there are at least three) names the output, and everything between holds
comma-separated action tokens.
"""

from __future__ import annotations

import re
from typing import Iterable

from .errors import MalformedTemplateError
from .models import ActionKind, ActionSpec, Placeholder, SourceLocation

__all__ = [
    "PLACEHOLDER_PATTERN",
    "is_helper_token",
    "parse_action",
    "parse_placeholder",
    "required_helpers",
    "strip_sigils",
    "validate_placeholders",
]

PLACEHOLDER_PATTERN = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)

# Longest prefix first: "^^" must win over "^", "??" over "?".
_SIGILS: tuple[tuple[str, ActionKind], ...] = (
    ("^^", ActionKind.OVERWRITE),
    ("^", ActionKind.SAVE),
    ("[]", ActionKind.MIX),
    ("??", ActionKind.ROUTE),
    ("?", ActionKind.ROUTE),
    ("++", ActionKind.EXTENDED_RENDER),
    ("+", ActionKind.EXTENDED_RENDER),
    (">", ActionKind.DATA),
)
_SYMBOL_ONLY = re.compile(r"^[\[\]{}#@^*<>?+]+$")
_DIGITS_ONLY = re.compile(r"^\d+$")


def strip_sigils(token: str) -> tuple[ActionKind, str]:
    """Strip leading sigils from ``token`` and return ``(kind, name)``.

    The kind comes from the first sigil; stacked sigils are all removed.

    Example:
        >>> strip_sigils(">setupData")
        (<ActionKind.DATA: 'data'>, 'setupData')
        >>> strip_sigils("^^")
        (<ActionKind.OVERWRITE: 'overwrite'>, '')
    """

    kind: ActionKind | None = None
    rest = token
    stripped = True
    while stripped:
        stripped = False
        for sigil, sigil_kind in _SIGILS:
            if rest.startswith(sigil):
                if kind is None:
                    kind = sigil_kind
                rest = rest[len(sigil) :]
                stripped = True
                break
    return (kind or ActionKind.RENDER), rest.strip()


def is_helper_token(token: str) -> bool:
    """Return ``True`` when ``token`` may reference a named helper."""

    return bool(
        len(token) > 1
        and not _SYMBOL_ONLY.match(token)
        and "=" not in token
        and not _DIGITS_ONLY.match(token)
    )


def parse_action(token: str) -> ActionSpec:
    """Parse one trimmed action token into an :class:`ActionSpec`."""

    kind, name = strip_sigils(token)
    reference = name if name and is_helper_token(token) else None
    return ActionSpec(kind=kind, name=name, raw=token, helper_reference=reference)


def parse_placeholder(
    raw_text: str,
    *,
    offset: int = 0,
    template: str | None = None,
) -> Placeholder:
    """Parse the placeholder ``raw_text`` found at ``offset`` in ``template``."""

    inner = raw_text[2:-2] if raw_text.startswith("{{") else raw_text
    segments = [segment.strip() for segment in inner.split(":")]
    data_path = segments[0]
    output_name: str | None = None
    middle = segments[1:]
    if len(segments) >= 3:
        output_name = segments[-1] or None
        middle = segments[1:-1]

    actions = tuple(
        parse_action(token)
        for segment in middle
        for token in (part.strip() for part in segment.split(","))
        if token
    )

    location = SourceLocation.from_offset(template or raw_text, offset)
    return Placeholder(
        raw_text=raw_text,
        data_path=data_path,
        actions=actions,
        output_name=output_name,
        offset=offset,
        line=location.line,
        column=location.column,
    )


def validate_placeholders(
    template: str,
    *,
    source_path: str = "",
) -> tuple[Placeholder, ...]:
    """Check brace balance and return every placeholder in ``template``.

    Raises:
        MalformedTemplateError: When the ``{{`` and ``}}`` counts differ.
    """

    open_count = template.count("{{")
    close_count = template.count("}}")
    if open_count != close_count:
        first = template.find("{{") if open_count > close_count else template.find("}}")
        raise MalformedTemplateError(
            f"Unbalanced placeholder braces: {open_count} '{{{{' "
            f"vs {close_count} '}}}}'",
            file_path=source_path,
            location=SourceLocation.from_offset(template, max(first, 0)),
            open_count=open_count,
            close_count=close_count,
        )

    return tuple(
        parse_placeholder(match.group(0), offset=match.start(), template=template)
        for match in PLACEHOLDER_PATTERN.finditer(template)
    )


def required_helpers(placeholders: Iterable[Placeholder]) -> tuple[str, ...]:
    """Return helper names referenced by ``placeholders`` in first-seen order.

    Example:
        >>> items = validate_placeholders("{{ items : [], cardItem, #, [] : list }}")
        >>> required_helpers(items)
        ('cardItem',)
    """

    seen: dict[str, None] = {}
    for placeholder in placeholders:
        for name in placeholder.helper_names:
            seen.setdefault(name, None)
    return tuple(seen)
