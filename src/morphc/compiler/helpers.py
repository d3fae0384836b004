"""Helper extraction from the component script section.

Only top-level declarations are considered. Each declaration is classified
independently into a :class:`~morphc.compiler.models.Helper` or an
:class:`ExtractionWarning`. When the script does not parse as a whole, it is
cut at every top-level declaration keyword and each statement is parsed on
its own, so a broken declaration never hides its neighbours.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import re
from typing import Any, Iterator

from .errors import ErrorCode
from .models import (
    Diagnostic,
    FunctionHelper,
    Helper,
    Parameter,
    ParameterShape,
    SourceLocation,
    TemplateHelper,
)
from .treesitter import GrammarLoader, ParsedSource, ts_point_column, ts_point_row

__all__ = [
    "ExtractionWarning",
    "HelperExtraction",
    "HelperExtractor",
    "is_well_formed_template",
]

_LANGUAGE = "javascript"

_FUNCTION_DECLARATIONS = frozenset(
    {"function_declaration", "generator_function_declaration"}
)
_VARIABLE_DECLARATIONS = frozenset({"lexical_declaration", "variable_declaration"})
_FUNCTION_EXPRESSIONS = frozenset(
    {"function", "function_expression", "generator_function", "arrow_function"}
)
_PARAMETER_KINDS = {
    "identifier": "identifier",
    "object_pattern": "object_pattern",
    "array_pattern": "array_pattern",
    "assignment_pattern": "assignment",
    "rest_pattern": "rest",
}

_TAG_PATTERN = re.compile(r"<[^>]+>")
_OPEN_TAG_PATTERN = re.compile(r"<([A-Za-z][\w:-]*)[^>]*>")
_CLOSE_TAG_PATTERN = re.compile(r"</[^>]+>")
_VOID_TAGS = frozenset({"input", "br", "img", "hr"})

_STATEMENT_START = re.compile(
    r"^(?:export\s+(?:default\s+)?)?(?:async\s+)?(?:function|const|let|var)\b",
    re.MULTILINE,
)
_DECLARED_NAME = re.compile(
    r"\b(?:function\s*\*?\s*|(?:const|let|var)\s+)([A-Za-z_$][\w$]*)"
)
_ESCAPE = re.compile(
    r"\\(u\{[0-9A-Fa-f]+\}|u[0-9A-Fa-f]{4}|x[0-9A-Fa-f]{2}|\r\n|[\s\S])"
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_LINE_CONTINUATIONS = frozenset({"\n", "\r", "\r\n", "\u2028", "\u2029"})


def _cook(raw: str) -> str:
    """Apply JavaScript string escapes to ``raw``.

    Example:
        >>> _cook(r'<b>\\"x\\"</b>\\u00e9')
        '<b>"x"</b>é'
    """

    def _replace(match: re.Match[str]) -> str:
        body = match.group(1)
        if body in _LINE_CONTINUATIONS:
            return ""
        if len(body) > 1 and body[0] in "ux":
            code = int(body[1:].strip("{}"), 16)
            return chr(code) if code <= 0x10FFFF else match.group(0)
        return _SIMPLE_ESCAPES.get(body, body)

    cooked = _ESCAPE.sub(_replace, raw)
    # Pair up \uD83D\uDE00 style escapes into single code points.
    return cooked.encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def is_well_formed_template(text: str) -> bool:
    """Return ``True`` when ``text`` looks like a balanced template fragment.

    Example:
        >>> is_well_formed_template("<option>{{x}}</option>")
        True
        >>> is_well_formed_template("<li><span></li>")
        False
        >>> is_well_formed_template("plain words")
        False
    """

    if not text.strip():
        return True
    has_tags = _TAG_PATTERN.search(text) is not None
    if "{{" not in text and not has_tags:
        return False
    if not has_tags:
        return True

    opened = 0
    for match in _OPEN_TAG_PATTERN.finditer(text):
        if match.group(0).endswith("/>"):
            continue
        if match.group(1).lower() in _VOID_TAGS:
            continue
        opened += 1
    closed = len(_CLOSE_TAG_PATTERN.findall(text))
    return opened == closed


@dataclass(frozen=True, slots=True)
class ExtractionWarning:
    """A declaration that could not be turned into a helper."""

    name: str
    message: str
    location: SourceLocation = field(default_factory=SourceLocation)

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            code=ErrorCode.HELPER_EXTRACTION_WARNING,
            message=f"Helper {self.name!r} skipped: {self.message}",
            line=self.location.line,
            column=self.location.column,
            offset=self.location.offset,
        )


@dataclass(frozen=True, slots=True)
class HelperExtraction:
    """Helpers keyed by name plus the warnings collected along the way."""

    helpers: dict[str, Helper] = field(default_factory=dict)
    warnings: tuple[ExtractionWarning, ...] = ()

    @property
    def diagnostics(self) -> tuple[Diagnostic, ...]:
        return tuple(warning.to_diagnostic() for warning in self.warnings)


class HelperExtractor:
    """Extract named helpers from script text with the JavaScript grammar."""

    def __init__(self, loader: GrammarLoader) -> None:
        self._loader = loader

    def extract(self, script_text: str | None) -> HelperExtraction:
        """Return every helper declared at the top level of ``script_text``.

        Raises:
            ParserUnavailableError: If the JavaScript grammar cannot be loaded.
        """

        if not script_text or not script_text.strip():
            return HelperExtraction()

        parsed = self._loader.parse(_LANGUAGE, script_text)
        if parsed.root.has_error:
            outcomes = self._classify_statements(script_text)
        else:
            outcomes = self._classify_all(parsed)

        helpers: dict[str, Helper] = {}
        warnings: list[ExtractionWarning] = []
        for name, outcome in outcomes:
            if isinstance(outcome, ExtractionWarning):
                warnings.append(outcome)
                continue
            # Later declarations shadow earlier ones, as they would at runtime.
            helpers[name] = outcome
        return HelperExtraction(helpers=helpers, warnings=tuple(warnings))

    def _classify_all(
        self, parsed: ParsedSource
    ) -> Iterator[tuple[str, Helper | ExtractionWarning]]:
        for node in parsed.root.named_children:
            if node.type == "export_statement":
                declaration = node.child_by_field_name("declaration")
                if declaration is None:
                    continue
                node = declaration
            if node.type in _FUNCTION_DECLARATIONS:
                outcome = self._from_function_declaration(parsed, node)
                if outcome is not None:
                    yield outcome
            elif node.type in _VARIABLE_DECLARATIONS:
                for declarator in node.named_children:
                    if declarator.type != "variable_declarator":
                        continue
                    outcome = self._from_declarator(parsed, declarator)
                    if outcome is not None:
                        yield outcome

    def _classify_statements(
        self, script_text: str
    ) -> Iterator[tuple[str, Helper | ExtractionWarning]]:
        starts = [match.start() for match in _STATEMENT_START.finditer(script_text)]
        bounds = sorted({0, *starts, len(script_text)})
        for start, end in zip(bounds, bounds[1:]):
            statement = script_text[start:end]
            if not statement.strip():
                continue
            parsed = self._loader.parse(_LANGUAGE, statement)
            if parsed.root.has_error:
                match = _DECLARED_NAME.search(statement)
                if start in starts and match is not None:
                    yield match.group(1), ExtractionWarning(
                        name=match.group(1),
                        message="syntax error",
                        location=SourceLocation.from_offset(script_text, start),
                    )
                continue
            for name, outcome in self._classify_all(parsed):
                if isinstance(outcome, ExtractionWarning):
                    outcome = replace(
                        outcome,
                        location=SourceLocation.from_offset(
                            script_text, start + outcome.location.offset
                        ),
                    )
                yield name, outcome

    def _from_function_declaration(
        self, parsed: ParsedSource, node: Any
    ) -> tuple[str, Helper | ExtractionWarning] | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = parsed.node_text(name_node)
        if node.has_error:
            return name, self._warning(parsed, node, name, "syntax error")
        return name, self._function_helper(parsed, node, name)

    def _from_declarator(
        self, parsed: ParsedSource, declarator: Any
    ) -> tuple[str, Helper | ExtractionWarning] | None:
        name_node = declarator.child_by_field_name("name")
        value = declarator.child_by_field_name("value")
        if name_node is None or name_node.type != "identifier" or value is None:
            return None
        name = parsed.node_text(name_node)
        if declarator.has_error:
            return name, self._warning(parsed, declarator, name, "syntax error")

        value = _unparenthesize(value)
        if value.type == "arrow_function":
            literal = _template_body(value)
            if literal is not None:
                return name, TemplateHelper(
                    name=name, literal_text=_static_chunks(parsed, literal)
                )
            return name, self._function_helper(parsed, value, name)
        if value.type in _FUNCTION_EXPRESSIONS:
            return name, self._function_helper(parsed, value, name)
        if value.type == "string":
            return name, TemplateHelper(
                name=name, literal_text=_cook(parsed.node_text(value)[1:-1])
            )
        if value.type == "template_string":
            text = _static_chunks(parsed, value)
            if not is_well_formed_template(text):
                return name, self._warning(
                    parsed, value, name, "template literal is not well formed"
                )
            return name, TemplateHelper(name=name, literal_text=text)
        return None

    def _function_helper(
        self, parsed: ParsedSource, node: Any, name: str
    ) -> FunctionHelper | ExtractionWarning:
        source = parsed.node_text(node)
        if not self._materializes(source):
            return self._warning(
                parsed, node, name, "function does not parse as an expression"
            )
        body = node.child_by_field_name("body")
        return FunctionHelper(
            name=name,
            parameters=_parameter_shape(parsed, node),
            body_text=parsed.node_text(body) if body is not None else "",
            source=source,
        )

    def _materializes(self, source: str) -> bool:
        """Check that ``source`` stands alone as a JavaScript expression."""

        reparsed = self._loader.parse(_LANGUAGE, f"({source})")
        return not reparsed.root.has_error

    def _warning(
        self, parsed: ParsedSource, node: Any, name: str, message: str
    ) -> ExtractionWarning:
        row = ts_point_row(node.start_point)
        column = ts_point_column(node.start_point)
        return ExtractionWarning(
            name=name,
            message=message,
            location=SourceLocation(
                line=row + 1,
                column=column + 1,
                offset=parsed.char_index(node.start_byte),
            ),
        )


def _unparenthesize(node: Any) -> Any:
    while node.type == "parenthesized_expression" and node.named_children:
        node = node.named_children[0]
    return node


def _template_body(arrow: Any) -> Any | None:
    body = arrow.child_by_field_name("body")
    if body is None:
        return None
    body = _unparenthesize(body)
    return body if body.type == "template_string" else None


def _static_chunks(parsed: ParsedSource, template: Any) -> str:
    """Return the cooked text of ``template`` between its backticks, minus ``${}``."""

    start = template.start_byte + 1
    end = template.end_byte - 1
    pieces: list[str] = []
    cursor = start
    for child in template.named_children:
        if child.type != "template_substitution":
            continue
        pieces.append(parsed.slice(cursor, child.start_byte))
        cursor = child.end_byte
    pieces.append(parsed.slice(cursor, end))
    return _cook("".join(pieces))


def _parameter_shape(parsed: ParsedSource, function: Any) -> ParameterShape:
    params = function.child_by_field_name("parameters")
    if params is None:
        single = function.child_by_field_name("parameter")
        if single is None:
            return ParameterShape(text="")
        text = parsed.node_text(single)
        return ParameterShape(
            text=text,
            parameters=(Parameter(kind="identifier", text=text, names=(text,)),),
        )

    parameters = tuple(
        Parameter(
            kind=_PARAMETER_KINDS[child.type],
            text=parsed.node_text(child),
            names=tuple(_bound_names(parsed, child)),
        )
        for child in params.named_children
        if child.type in _PARAMETER_KINDS
    )
    return ParameterShape(text=parsed.node_text(params), parameters=parameters)


def _bound_names(parsed: ParsedSource, node: Any) -> Iterator[str]:
    node_type = node.type
    if node_type in {"identifier", "shorthand_property_identifier_pattern"}:
        yield parsed.node_text(node)
    elif node_type == "pair_pattern":
        value = node.child_by_field_name("value")
        if value is not None:
            yield from _bound_names(parsed, value)
    elif node_type in {"assignment_pattern", "object_assignment_pattern"}:
        left = node.child_by_field_name("left")
        if left is not None:
            yield from _bound_names(parsed, left)
    elif node_type in {"object_pattern", "array_pattern", "rest_pattern"}:
        for child in node.named_children:
            yield from _bound_names(parsed, child)
