"""Typed error hierarchy and diagnostic codes for the component compiler."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from .models import Diagnostic, Severity, SourceLocation

__all__ = [
    "ErrorCode",
    "CompilerError",
    "MissingTemplateError",
    "MalformedTemplateError",
    "StructuredDataParseError",
    "ParserUnavailableError",
    "suggestion_for",
]


class ErrorCode(StrEnum):
    """Stable codes attached to compiler errors and warnings."""

    MISSING_TEMPLATE = "MISSING_TEMPLATE"
    MALFORMED_TEMPLATE = "MALFORMED_TEMPLATE"
    JSON_PARSE_ERROR = "JSON_PARSE_ERROR"
    PARSER_UNAVAILABLE = "PARSER_UNAVAILABLE"
    HELPER_EXTRACTION_WARNING = "HELPER_EXTRACTION_WARNING"
    STYLE_RULE_PARSE_WARNING = "STYLE_RULE_PARSE_WARNING"
    SCOPED_NAME_COLLISION = "SCOPED_NAME_COLLISION"
    DUPLICATE_SECTION = "DUPLICATE_SECTION"
    UNRESOLVED_HELPER = "UNRESOLVED_HELPER"


_SUGGESTIONS: dict[ErrorCode, str] = {
    ErrorCode.MISSING_TEMPLATE: (
        "Add template markup, or keep only a <style> block for a "
        "style-only component"
    ),
    ErrorCode.MALFORMED_TEMPLATE: (
        "Check placeholder syntax: every '{{' needs a matching '}}'"
    ),
    ErrorCode.JSON_PARSE_ERROR: (
        "Ensure the handshake block holds valid JSON (comments and "
        "single-quoted keys are tolerated)"
    ),
    ErrorCode.PARSER_UNAVAILABLE: (
        "Install the tree-sitter grammars: pip install tree-sitter-languages"
    ),
    ErrorCode.HELPER_EXTRACTION_WARNING: (
        "Validate the JavaScript syntax of the skipped helper"
    ),
    ErrorCode.STYLE_RULE_PARSE_WARNING: (
        "Validate CSS syntax and check for missing braces or semicolons"
    ),
    ErrorCode.SCOPED_NAME_COLLISION: (
        "Include [local] in the scoped name pattern"
    ),
    ErrorCode.DUPLICATE_SECTION: (
        "Merge the repeated blocks into a single block"
    ),
    ErrorCode.UNRESOLVED_HELPER: (
        "Define the helper in the <script> block or pass it as a dependency"
    ),
}


def suggestion_for(code: str) -> str | None:
    """Return a remediation hint for ``code`` when one is known.

    Example:
        >>> suggestion_for("MALFORMED_TEMPLATE").startswith("Check")
        True
    """

    try:
        return _SUGGESTIONS[ErrorCode(code)]
    except ValueError:
        return None


@dataclass(slots=True, eq=False)
class CompilerError(Exception):
    """Base error for fatal compilation failures."""

    message: str
    code: ErrorCode = ErrorCode.MALFORMED_TEMPLATE
    file_path: str = ""
    location: SourceLocation = field(default_factory=SourceLocation)

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        if self.file_path:
            return (
                f"{self.code}: {self.message} "
                f"({self.file_path}:{self.location.line}:{self.location.column})"
            )
        return f"{self.code}: {self.message}"

    def to_diagnostic(self) -> Diagnostic:
        """Return the error as an error-severity diagnostic."""

        return Diagnostic(
            code=str(self.code),
            message=self.message,
            line=self.location.line,
            column=self.location.column,
            offset=self.location.offset,
            severity=Severity.ERROR,
        )


@dataclass(slots=True, eq=False)
class MissingTemplateError(CompilerError):
    """Raised when a document has neither usable template nor style-only shape."""

    code: ErrorCode = ErrorCode.MISSING_TEMPLATE


@dataclass(slots=True, eq=False)
class MalformedTemplateError(CompilerError):
    """Raised when placeholder braces in the template are unbalanced."""

    code: ErrorCode = ErrorCode.MALFORMED_TEMPLATE
    open_count: int = 0
    close_count: int = 0


@dataclass(slots=True, eq=False)
class StructuredDataParseError(CompilerError):
    """Raised when the handshake block cannot be parsed as JSON."""

    code: ErrorCode = ErrorCode.JSON_PARSE_ERROR


@dataclass(slots=True, eq=False)
class ParserUnavailableError(CompilerError):
    """Raised when a required tree-sitter grammar cannot be loaded."""

    code: ErrorCode = ErrorCode.PARSER_UNAVAILABLE
    language: str = ""
