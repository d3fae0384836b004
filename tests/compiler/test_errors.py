"""Tests for compiler errors and diagnostics."""

from __future__ import annotations

import pytest

from morphc.compiler import (
    CompilerError,
    ErrorCode,
    MalformedTemplateError,
    MissingTemplateError,
    Severity,
    StructuredDataParseError,
    suggestion_for,
)
from morphc.compiler.models import SourceLocation


def test_every_code_has_a_suggestion() -> None:
    for code in ErrorCode:
        assert suggestion_for(code)


def test_unknown_code_has_no_suggestion() -> None:
    assert suggestion_for("NOT_A_CODE") is None


@pytest.mark.parametrize(
    ("error_type", "code"),
    [
        (MissingTemplateError, ErrorCode.MISSING_TEMPLATE),
        (MalformedTemplateError, ErrorCode.MALFORMED_TEMPLATE),
        (StructuredDataParseError, ErrorCode.JSON_PARSE_ERROR),
    ],
)
def test_subclasses_carry_their_code(error_type: type[CompilerError], code: ErrorCode) -> None:
    error = error_type("boom")

    assert isinstance(error, CompilerError)
    assert error.code == code
    assert str(error) == f"{code}: boom"


def test_error_converts_to_diagnostic() -> None:
    error = StructuredDataParseError(
        "bad json",
        file_path="Card.morph",
        location=SourceLocation(line=4, column=2, offset=40),
    )

    diagnostic = error.to_diagnostic()

    assert diagnostic.severity is Severity.ERROR
    assert (diagnostic.line, diagnostic.column, diagnostic.offset) == (4, 2, 40)
    assert diagnostic.as_dict()["code"] == "JSON_PARSE_ERROR"
    assert str(error) == "JSON_PARSE_ERROR: bad json (Card.morph:4:2)"


def test_errors_can_be_raised_and_caught() -> None:
    with pytest.raises(CompilerError) as excinfo:
        raise MissingTemplateError("nothing here", file_path="x.morph")

    assert excinfo.value.args == ("nothing here",)
