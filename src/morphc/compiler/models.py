"""Data structures shared by the compiler stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping

__all__ = [
    "Severity",
    "SourceLocation",
    "Diagnostic",
    "ComponentDocument",
    "ActionKind",
    "ActionSpec",
    "Placeholder",
    "Parameter",
    "ParameterShape",
    "FunctionHelper",
    "TemplateHelper",
    "Helper",
    "ScopedClass",
    "ScopedStyle",
    "ModuleDescriptor",
    "CompilationResult",
]


class Severity(StrEnum):
    """Severity attached to a diagnostic."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """1-based line/column plus 0-based character offset."""

    line: int = 1
    column: int = 1
    offset: int = 0

    @classmethod
    def from_offset(cls, text: str, offset: int) -> "SourceLocation":
        """Return the location of character ``offset`` within ``text``.

        Example:
            >>> SourceLocation.from_offset("ab\\ncd", 4)
            SourceLocation(line=2, column=2, offset=4)
        """

        offset = max(0, min(offset, len(text)))
        line = text.count("\n", 0, offset) + 1
        line_start = text.rfind("\n", 0, offset) + 1
        return cls(line=line, column=offset - line_start + 1, offset=offset)


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Structured, presentation-free report attached to a compilation."""

    code: str
    message: str
    line: int = 1
    column: int = 1
    offset: int = 0
    severity: Severity = Severity.WARNING

    def as_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "offset": self.offset,
            "severity": str(self.severity),
        }


@dataclass(frozen=True, slots=True)
class ComponentDocument:
    """The sections of one component document after extraction."""

    template_markup: str
    script_text: str | None
    style_text: str | None
    handshake_data: Any | None
    is_style_only: bool
    source_path: str
    content_hash: str
    component_name: str = "component"


class ActionKind(StrEnum):
    """Kinds of placeholder actions, keyed by their leading sigil."""

    ROUTE = "route"
    SAVE = "save"
    OVERWRITE = "overwrite"
    DATA = "data"
    RENDER = "render"
    EXTENDED_RENDER = "extended_render"
    MIX = "mix"


@dataclass(frozen=True, slots=True)
class ActionSpec:
    """One action token from a placeholder's action list."""

    kind: ActionKind
    name: str
    raw: str
    helper_reference: str | None = None


@dataclass(frozen=True, slots=True)
class Placeholder:
    """A single ``{{ ... }}`` occurrence in template markup."""

    raw_text: str
    data_path: str
    actions: tuple[ActionSpec, ...]
    output_name: str | None
    offset: int
    line: int
    column: int

    @property
    def helper_names(self) -> tuple[str, ...]:
        return tuple(
            action.helper_reference
            for action in self.actions
            if action.helper_reference
        )


@dataclass(frozen=True, slots=True)
class Parameter:
    """A single formal parameter of a function helper."""

    kind: str
    text: str
    names: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ParameterShape:
    """Formal parameter list of a function helper."""

    text: str
    parameters: tuple[Parameter, ...] = ()

    @property
    def names(self) -> tuple[str, ...]:
        """Every identifier bound by the parameter list, in order."""

        return tuple(name for param in self.parameters for name in param.names)

    @property
    def is_destructured(self) -> bool:
        return any(
            param.kind in {"object_pattern", "array_pattern"}
            for param in self.parameters
        )


@dataclass(frozen=True, slots=True)
class FunctionHelper:
    """Helper declared as a function; ``source`` is its verbatim expression."""

    name: str
    parameters: ParameterShape
    body_text: str
    source: str
    kind: str = "function"


@dataclass(frozen=True, slots=True)
class TemplateHelper:
    """Helper declared as a string or template literal."""

    name: str
    literal_text: str
    kind: str = "template"


Helper = FunctionHelper | TemplateHelper


@dataclass(frozen=True, slots=True)
class ScopedClass:
    """Scoped replacement for one original class name."""

    original: str
    scoped_name: str
    rule_content: str


@dataclass(frozen=True, slots=True)
class ScopedStyle:
    """Output of the style scoper for one style section."""

    css: str
    classes: Mapping[str, ScopedClass] = field(default_factory=dict)
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def exports(self) -> dict[str, str]:
        """Return the original → scoped class name mapping."""

        return {name: item.scoped_name for name, item in self.classes.items()}


@dataclass(frozen=True, slots=True)
class ModuleDescriptor:
    """Render-ready descriptor handed to the morph engine."""

    template: str
    helpers: Mapping[str, Helper] = field(default_factory=dict)
    handshake: Any = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CompilationResult:
    """Externally visible output of one compilation."""

    code: str
    style_exports: Mapping[str, str] | None
    used_style_variables: tuple[str, ...]
    is_style_only: bool
    diagnostics: tuple[Diagnostic, ...]
    timing_ms: float
    component_name: str = "component"
    content_hash: str = ""
    css: str | None = None
    descriptor: ModuleDescriptor | None = None
    placeholders: tuple[Placeholder, ...] = ()
    required_helpers: tuple[str, ...] = ()
    from_cache: bool = False

    def summary(self) -> dict[str, Any]:
        """Return a JSON-friendly view of the result."""

        helpers: dict[str, str] = {}
        if self.descriptor is not None:
            helpers = {
                name: helper.kind
                for name, helper in self.descriptor.helpers.items()
            }
        return {
            "component": self.component_name,
            "content_hash": self.content_hash,
            "is_style_only": self.is_style_only,
            "style_exports": (
                dict(self.style_exports)
                if self.style_exports is not None
                else None
            ),
            "used_style_variables": list(self.used_style_variables),
            "helpers": helpers,
            "required_helpers": list(self.required_helpers),
            "placeholders": [item.raw_text for item in self.placeholders],
            "diagnostics": [item.as_dict() for item in self.diagnostics],
            "timing_ms": round(self.timing_ms, 3),
            "from_cache": self.from_cache,
        }
