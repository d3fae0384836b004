"""Compiler service orchestrating the per-document pipeline."""

from __future__ import annotations

import dataclasses
import time
from typing import Iterable

from morphc import __version__
from morphc.core.config import AppConfig, CompileOptions
from morphc.core.logging import Logger, get_logger

from .assembler import assemble
from .cache import CompilationCache, cache_key
from .collaborators import StyleSink
from .errors import CompilerError, ErrorCode
from .helpers import HelperExtractor
from .models import CompilationResult, Diagnostic, Helper, Placeholder, ScopedStyle
from .placeholders import required_helpers, validate_placeholders
from .sections import extract_sections
from .styles import StyleScoper, rewrite_template_classes, used_style_variables
from .treesitter import GrammarLoader

__all__ = ["MorphCompiler", "unresolved_helper_diagnostics"]


def unresolved_helper_diagnostics(
    placeholders: Iterable[Placeholder],
    helpers: Iterable[str],
) -> tuple[Diagnostic, ...]:
    """Warn once per helper name that placeholders use but nothing defines."""

    known = set(helpers)
    reported: set[str] = set()
    diagnostics: list[Diagnostic] = []
    for placeholder in placeholders:
        for name in placeholder.helper_names:
            if name in known or name in reported:
                continue
            reported.add(name)
            diagnostics.append(
                Diagnostic(
                    code=ErrorCode.UNRESOLVED_HELPER,
                    message=(
                        f"Placeholder {placeholder.raw_text!r} references "
                        f"undefined helper {name!r}"
                    ),
                    line=placeholder.line,
                    column=placeholder.column,
                    offset=placeholder.offset,
                )
            )
    return tuple(diagnostics)


class MorphCompiler:
    """Compile component documents into ES module source.

    One instance owns its grammar loader and (optionally) a result cache.
    Compilations share nothing else, so a compiler may be used from several
    threads as long as the injected style sink tolerates it.
    """

    def __init__(
        self,
        *,
        options: CompileOptions | None = None,
        cache: CompilationCache[CompilationResult] | None = None,
        loader: GrammarLoader | None = None,
        style_sink: StyleSink | None = None,
        logger: Logger | None = None,
        compiler_version: str = __version__,
    ) -> None:
        self._options = options or CompileOptions()
        self._cache = cache
        self._loader = loader or GrammarLoader()
        self._style_sink = style_sink
        self._logger = logger or get_logger(__name__, component="compiler")
        self._version = compiler_version

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        **kwargs: object,
    ) -> "MorphCompiler":
        """Build a compiler whose defaults and cache follow ``config``."""

        cache: CompilationCache[CompilationResult] | None = None
        if config.cache.enabled:
            cache = CompilationCache(
                max_entries=config.cache.max_entries,
                ttl_seconds=config.cache.ttl_seconds,
            )
        return cls(options=config.compiler, cache=cache, **kwargs)  # type: ignore[arg-type]

    @property
    def options(self) -> CompileOptions:
        return self._options

    @property
    def cache(self) -> CompilationCache[CompilationResult] | None:
        return self._cache

    def compile(
        self,
        raw_text: str,
        *,
        source_path: str = "",
        options: CompileOptions | None = None,
    ) -> CompilationResult:
        """Compile ``raw_text`` and return the generated module and metadata.

        Raises:
            MissingTemplateError: No usable template and not style-only.
            MalformedTemplateError: Placeholder braces are unbalanced.
            StructuredDataParseError: The handshake block is invalid.
            ParserUnavailableError: A required grammar cannot be loaded.
        """

        started = time.perf_counter()
        opts = options or self._options
        logger = self._logger.bind(source=source_path or "<memory>")

        key: str | None = None
        if self._cache is not None:
            key = cache_key(
                raw_text,
                opts.fingerprint(),
                compiler_version=self._version,
                source_path=source_path,
            )
            cached = self._cache.get(key)
            if cached is not None:
                elapsed = (time.perf_counter() - started) * 1000
                logger.debug("compile-cache-hit", key=key)
                return dataclasses.replace(
                    cached, from_cache=True, timing_ms=elapsed
                )

        try:
            result = self._run(raw_text, source_path=source_path, options=opts)
        except CompilerError as exc:
            if not exc.file_path:
                exc.file_path = source_path
            logger.debug("compile-failed", code=str(exc.code), error=exc.message)
            raise

        elapsed = (time.perf_counter() - started) * 1000
        result = dataclasses.replace(result, timing_ms=elapsed)
        if self._cache is not None and key is not None:
            self._cache.set(key, result)
        if self._style_sink is not None and result.css is not None:
            self._style_sink.add(result.component_name, result.css)

        logger.debug(
            "compile-complete",
            component=result.component_name,
            style_only=result.is_style_only,
            helpers=len(result.descriptor.helpers) if result.descriptor else 0,
            placeholders=len(result.placeholders),
            diagnostics=len(result.diagnostics),
            timing_ms=round(elapsed, 3),
        )
        return result

    def _run(
        self,
        raw_text: str,
        *,
        source_path: str,
        options: CompileOptions,
    ) -> CompilationResult:
        extracted = extract_sections(
            raw_text,
            loader=self._loader,
            source_path=source_path,
            compiler_version=self._version,
        )
        document = extracted.document
        diagnostics: list[Diagnostic] = list(extracted.diagnostics)

        placeholders = validate_placeholders(
            document.template_markup, source_path=source_path
        )

        helpers: dict[str, Helper] = {}
        if document.script_text is not None:
            extraction = HelperExtractor(self._loader).extract(document.script_text)
            helpers = extraction.helpers
            diagnostics.extend(extraction.diagnostics)

        scoped: ScopedStyle | None = None
        if document.style_text is not None:
            scoper = StyleScoper(
                pattern=options.scoped_name_pattern,
                hash_mode=options.hash_mode,
                loader=self._loader,
            )
            scoped = scoper.scope(document.style_text, document.component_name)
            diagnostics.extend(scoped.diagnostics)

        template = document.template_markup
        if scoped is not None:
            template = rewrite_template_classes(template, scoped.exports)

        needed = required_helpers(placeholders)
        diagnostics.extend(unresolved_helper_diagnostics(placeholders, helpers))

        assembled = assemble(
            document,
            template=template,
            helpers=helpers,
            scoped=scoped,
            options=options,
        )
        return CompilationResult(
            code=assembled.code,
            style_exports=scoped.exports if scoped is not None else None,
            used_style_variables=(
                used_style_variables(scoped.css) if scoped is not None else ()
            ),
            is_style_only=document.is_style_only,
            diagnostics=tuple(diagnostics),
            timing_ms=0.0,
            component_name=document.component_name,
            content_hash=document.content_hash,
            css=scoped.css if scoped is not None else None,
            descriptor=assembled.descriptor,
            placeholders=placeholders,
            required_helpers=needed,
        )
