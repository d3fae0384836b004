"""Tests for placeholder validation and action parsing."""

from __future__ import annotations

import pytest

from morphc.compiler import (
    ActionKind,
    MalformedTemplateError,
    parse_placeholder,
    required_helpers,
    validate_placeholders,
)
from morphc.compiler.placeholders import is_helper_token, strip_sigils


def test_list_placeholder_with_output_name() -> None:
    (placeholder,) = validate_placeholders("{{ items : [], cardItem, #, [] : list }}")

    assert placeholder.data_path == "items"
    assert placeholder.output_name == "list"
    assert [action.kind for action in placeholder.actions] == [
        ActionKind.MIX,
        ActionKind.RENDER,
        ActionKind.RENDER,
        ActionKind.MIX,
    ]
    assert required_helpers([placeholder]) == ("cardItem",)


def test_two_segments_have_no_output_name() -> None:
    placeholder = parse_placeholder("{{ @all : blank, ^^, >setupData }}")

    assert placeholder.data_path == "@all"
    assert placeholder.output_name is None
    kinds = {action.raw: action.kind for action in placeholder.actions}
    assert kinds == {
        "blank": ActionKind.RENDER,
        "^^": ActionKind.OVERWRITE,
        ">setupData": ActionKind.DATA,
    }
    assert placeholder.helper_names == ("blank", "setupData")


def test_plain_data_placeholder() -> None:
    placeholder = parse_placeholder("{{ user/profile/name }}")

    assert placeholder.data_path == "user/profile/name"
    assert placeholder.actions == ()
    assert placeholder.output_name is None


@pytest.mark.parametrize(
    ("token", "kind", "name"),
    [
        ("^^keep", ActionKind.OVERWRITE, "keep"),
        ("^keep", ActionKind.SAVE, "keep"),
        (">load", ActionKind.DATA, "load"),
        ("[]merge", ActionKind.MIX, "merge"),
        ("??maybe", ActionKind.ROUTE, "maybe"),
        ("?maybe", ActionKind.ROUTE, "maybe"),
        ("++more", ActionKind.EXTENDED_RENDER, "more"),
        ("+more", ActionKind.EXTENDED_RENDER, "more"),
        ("plain", ActionKind.RENDER, "plain"),
        ("^>both", ActionKind.SAVE, "both"),
    ],
)
def test_sigils_strip_longest_prefix_first(
    token: str, kind: ActionKind, name: str
) -> None:
    assert strip_sigils(token) == (kind, name)


@pytest.mark.parametrize("token", ["#", "[]", "^^", "42", "a=b", "x", "?+", "{}"])
def test_helper_token_filter_rejects_non_helpers(token: str) -> None:
    assert not is_helper_token(token)


def test_required_helpers_are_unique_and_ordered() -> None:
    template = (
        "<ul>{{ a : >load, row }}</ul>"
        "<p>{{ b : row, ?empty }}</p>"
        "<p>{{ c : 42, x, k=v, load }}</p>"
    )

    assert required_helpers(validate_placeholders(template)) == (
        "load",
        "row",
        "empty",
    )


def test_positions_point_into_the_template() -> None:
    template = "<div>\n  <p>{{ first }}</p>\n  {{ second\n    : fmt }}\n</div>"
    placeholders = validate_placeholders(template)

    assert [p.data_path for p in placeholders] == ["first", "second"]
    for placeholder in placeholders:
        start = placeholder.offset
        assert template[start : start + len(placeholder.raw_text)] == placeholder.raw_text
    assert (placeholders[0].line, placeholders[0].column) == (2, 6)
    assert (placeholders[1].line, placeholders[1].column) == (3, 3)
    assert placeholders[1].helper_names == ("fmt",)


def test_unbalanced_braces_fail_before_parsing() -> None:
    with pytest.raises(MalformedTemplateError) as excinfo:
        validate_placeholders("<p>{{ ok }}</p><p>{{ broken }</p>", source_path="a.morph")

    error = excinfo.value
    assert error.open_count == 2
    assert error.close_count == 1
    assert error.code == "MALFORMED_TEMPLATE"
    assert error.file_path == "a.morph"


def test_template_without_placeholders() -> None:
    assert validate_placeholders("<p>static</p>") == ()
