"""Component compiler: sections, placeholders, helpers, styles and codegen.

Example:
    >>> from morphc.compiler import required_helpers, validate_placeholders
    >>> required_helpers(validate_placeholders("{{ name : >format }}"))
    ('format',)
"""

from __future__ import annotations

from .assembler import AssembledModule, assemble, build_descriptor
from .cache import CompilationCache, cache_key
from .collaborators import HotUpdate, RecordingStyleSink, StyleSink, hot_update
from .errors import (
    CompilerError,
    ErrorCode,
    MalformedTemplateError,
    MissingTemplateError,
    ParserUnavailableError,
    StructuredDataParseError,
    suggestion_for,
)
from .helpers import HelperExtractor, is_well_formed_template
from .models import (
    ActionKind,
    ActionSpec,
    CompilationResult,
    ComponentDocument,
    Diagnostic,
    FunctionHelper,
    ModuleDescriptor,
    Placeholder,
    ScopedStyle,
    Severity,
    TemplateHelper,
)
from .placeholders import parse_placeholder, required_helpers, validate_placeholders
from .sections import extract_sections
from .service import MorphCompiler
from .styles import StyleScoper, rewrite_template_classes, used_style_variables
from .treesitter import GrammarLoader

__all__ = [
    "ActionKind",
    "ActionSpec",
    "AssembledModule",
    "CompilationCache",
    "CompilationResult",
    "CompilerError",
    "ComponentDocument",
    "Diagnostic",
    "ErrorCode",
    "FunctionHelper",
    "GrammarLoader",
    "HelperExtractor",
    "HotUpdate",
    "MalformedTemplateError",
    "MissingTemplateError",
    "ModuleDescriptor",
    "MorphCompiler",
    "ParserUnavailableError",
    "Placeholder",
    "RecordingStyleSink",
    "ScopedStyle",
    "Severity",
    "StructuredDataParseError",
    "StyleScoper",
    "StyleSink",
    "TemplateHelper",
    "assemble",
    "build_descriptor",
    "cache_key",
    "extract_sections",
    "hot_update",
    "is_well_formed_template",
    "parse_placeholder",
    "required_helpers",
    "rewrite_template_classes",
    "suggestion_for",
    "used_style_variables",
    "validate_placeholders",
]
