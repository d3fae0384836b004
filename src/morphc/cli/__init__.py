"""Command-line interface for :mod:`morphc`.

This module exposes the Typer application behind the ``morphc`` console
script. Commands load configuration through the same precedence stack
(CLI flags > environment > ``morphc.toml`` > packaged defaults) before
handing documents to :class:`~morphc.compiler.MorphCompiler`.

Example:
    >>> import typer
    >>> from morphc.cli import create_app
    >>> app = create_app()
    >>> isinstance(app, typer.Typer)
    True
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

import tomllib
import typer
from pydantic import ValidationError

from morphc.cli.init import init_config
from morphc.compiler import (
    CompilationResult,
    CompilerError,
    Diagnostic,
    MorphCompiler,
    suggestion_for,
)
from morphc.core.config import (
    AppConfig,
    HashMode,
    USER_CONFIG_NAME,
    env_overrides,
    load_config,
    load_packaged_defaults,
)
from morphc.core.logging import configure_logging, get_logger

_app_help = (
    "Compiler for single-file morph components."
    "\n\n"
    "Use `morphc compile` to emit an ES module and `morphc check` to lint "
    "many components at once."
)

_COMPONENT_SUFFIX = ".morph"


def _read_user_config(path: Path | None) -> dict[str, Any] | None:
    """Return parsed ``morphc.toml`` content, or ``None`` when absent."""

    candidate = path if path is not None else Path.cwd() / USER_CONFIG_NAME
    if not candidate.is_file():
        if path is not None:
            raise typer.BadParameter(
                f"Config file not found: {path}", param_hint="--config"
            )
        return None
    try:
        return tomllib.loads(candidate.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise typer.BadParameter(
            f"Invalid TOML in {candidate}: {exc}", param_hint="--config"
        ) from exc


def _compiler_overrides(
    *,
    production: bool | None,
    hash_mode: HashMode | None,
    source_maps: bool | None,
    include_handshake: bool | None,
) -> dict[str, Any]:
    compiler: dict[str, Any] = {}
    if production is not None:
        compiler["production_mode"] = production
    if hash_mode is not None:
        compiler["hash_mode"] = HashMode(hash_mode).value
    if source_maps is not None:
        compiler["source_maps"] = source_maps
    if include_handshake is not None:
        compiler["include_handshake"] = include_handshake
    return compiler


def resolve_config(
    *,
    config_path: Path | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load the effective configuration for a CLI invocation.

    Raises:
        typer.BadParameter: If a layer holds invalid settings.
    """

    try:
        env_config = env_overrides(os.environ if environ is None else environ)
        return load_config(
            defaults=load_packaged_defaults(),
            user_config=_read_user_config(config_path),
            env_config=env_config,
            cli_overrides=cli_overrides,
        )
    except (ValidationError, ValueError) as exc:
        raise typer.BadParameter(f"Invalid configuration: {exc}") from exc


def _format_diagnostic(label: str, diagnostic: Diagnostic) -> str:
    return (
        f"{label}:{diagnostic.line}:{diagnostic.column}: "
        f"{diagnostic.code}: {diagnostic.message}"
    )


def _emit_diagnostics(label: str, diagnostics: Iterable[Diagnostic]) -> None:
    for diagnostic in diagnostics:
        typer.secho(
            _format_diagnostic(label, diagnostic),
            fg=typer.colors.YELLOW,
            err=True,
        )


def _emit_error(label: str, exc: CompilerError) -> None:
    typer.secho(
        _format_diagnostic(label, exc.to_diagnostic()),
        fg=typer.colors.RED,
        err=True,
    )
    hint = suggestion_for(exc.code)
    if hint:
        typer.secho(f"  hint: {hint}", fg=typer.colors.RED, err=True)


def _iter_components(paths: Iterable[Path]) -> Iterator[Path]:
    """Yield component files, expanding directories recursively."""

    for path in paths:
        if path.is_dir():
            yield from sorted(path.rglob(f"*{_COMPONENT_SUFFIX}"))
        else:
            yield path


def _summarize_check(name: str, result: CompilationResult) -> str:
    if result.is_style_only:
        classes = len(result.style_exports or {})
        return f"[{name}] ok (style-only, {classes} scoped classes)"
    helpers = sorted(result.descriptor.helpers) if result.descriptor else []
    helper_text = ", ".join(helpers) if helpers else "none"
    return (
        f"[{name}] ok ({len(result.placeholders)} placeholders; "
        f"helpers: {helper_text})"
    )


def create_app() -> "typer.Typer":
    """Return the Typer application powering the ``morphc`` CLI.

    Example:
        >>> import typer
        >>> from morphc.cli import create_app
        >>> cli = create_app()
        >>> isinstance(cli, typer.Typer)
        True
    """

    app = typer.Typer(
        help=_app_help,
        no_args_is_help=True,
        rich_markup_mode="rich",
        invoke_without_command=False,
        cls=typer.core.TyperGroup,
    )

    @app.callback()
    def main_callback() -> None:
        """Top-level CLI callback ensuring subcommands are dispatched."""

        return None

    @app.command("compile", help="Compile one component into an ES module.")
    def compile_command(  # noqa: PLR0913 - CLI surface area intentionally explicit
        path: Path = typer.Argument(
            ...,
            exists=True,
            dir_okay=False,
            readable=True,
            help="Component document to compile.",
        ),
        out: Path | None = typer.Option(
            None,
            "--out",
            "-o",
            help="Write generated code here instead of stdout.",
        ),
        production: bool | None = typer.Option(
            None,
            "--production/--no-production",
            help="Target a production build (drops handshake data).",
        ),
        hash_mode: HashMode | None = typer.Option(
            None,
            "--hash-mode",
            case_sensitive=False,
            help="Inputs hashed into scoped class names.",
        ),
        source_maps: bool | None = typer.Option(
            None,
            "--source-maps/--no-source-maps",
            help="Append an inline source-map comment.",
        ),
        include_handshake: bool | None = typer.Option(
            None,
            "--handshake/--no-handshake",
            help="Embed handshake data in development builds.",
        ),
        as_json: bool = typer.Option(
            False,
            "--json",
            help="Print the compilation result as JSON.",
        ),
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help=f"Path to a {USER_CONFIG_NAME} file.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
        log_file: Path | None = typer.Option(
            None,
            "--log-file",
            help="Append JSON log lines to this file.",
        ),
    ) -> None:
        """Compile a single component document."""

        overrides: dict[str, Any] = {}
        compiler_overrides = _compiler_overrides(
            production=production,
            hash_mode=hash_mode,
            source_maps=source_maps,
            include_handshake=include_handshake,
        )
        if compiler_overrides:
            overrides["compiler"] = compiler_overrides
        if log_level:
            overrides["log_level"] = log_level

        config = resolve_config(config_path=config_path, cli_overrides=overrides)
        configure_logging(level=config.log_level, log_file=log_file)
        logger = get_logger(__name__, command="compile")

        compiler = MorphCompiler.from_config(config)
        label = str(path)
        try:
            result = compiler.compile(
                path.read_text(encoding="utf-8"), source_path=label
            )
        except CompilerError as exc:
            _emit_error(label, exc)
            raise typer.Exit(code=1) from exc

        logger.info(
            "compile-finished",
            path=label,
            diagnostics=len(result.diagnostics),
            timing_ms=round(result.timing_ms, 3),
        )

        if as_json:
            payload = result.summary()
            payload["code"] = result.code
            payload["css"] = result.css
            typer.echo(json.dumps(payload, indent=2))
        elif out is not None:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(result.code, encoding="utf-8")
            typer.secho(f"Wrote {out}", fg=typer.colors.GREEN, err=True)
        else:
            typer.echo(result.code, nl=False)

        if not as_json:
            _emit_diagnostics(label, result.diagnostics)

    @app.command(
        "check",
        help="Compile components and report placeholders, helpers and issues.",
    )
    def check_command(
        paths: list[Path] = typer.Argument(
            ...,
            exists=True,
            help="Component files or directories to scan for *.morph files.",
        ),
        production: bool | None = typer.Option(
            None,
            "--production/--no-production",
            help="Check as a production build.",
        ),
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help=f"Path to a {USER_CONFIG_NAME} file.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
        log_file: Path | None = typer.Option(
            None,
            "--log-file",
            help="Append JSON log lines to this file.",
        ),
    ) -> None:
        """Check many components, exiting non-zero on any fatal error."""

        overrides: dict[str, Any] = {}
        if production is not None:
            overrides["compiler"] = {"production_mode": production}
        if log_level:
            overrides["log_level"] = log_level

        config = resolve_config(config_path=config_path, cli_overrides=overrides)
        configure_logging(level=config.log_level, log_file=log_file)
        logger = get_logger(__name__, command="check")
        compiler = MorphCompiler.from_config(config)

        checked = 0
        failed = 0
        for component in _iter_components(paths):
            checked += 1
            label = str(component)
            try:
                result = compiler.compile(
                    component.read_text(encoding="utf-8"), source_path=label
                )
            except CompilerError as exc:
                failed += 1
                _emit_error(label, exc)
                continue
            typer.secho(_summarize_check(component.name, result), fg=typer.colors.GREEN)
            if result.required_helpers:
                typer.echo(f"  required: {', '.join(result.required_helpers)}")
            _emit_diagnostics(label, result.diagnostics)

        logger.info("check-finished", checked=checked, failed=failed)

        summary = f"Checked {checked} component(s): {checked - failed} ok, {failed} failed"
        if failed:
            typer.secho(summary, fg=typer.colors.RED, bold=True)
            raise typer.Exit(code=1)
        typer.secho(summary, fg=typer.colors.GREEN, bold=True)

    @app.command("init", help=f"Write a commented {USER_CONFIG_NAME}.")
    def init_command(
        directory: Path = typer.Option(
            Path("."),
            "--directory",
            "-d",
            file_okay=False,
            help="Directory receiving the config file.",
        ),
        force: bool = typer.Option(
            False,
            "--force",
            help="Overwrite an existing config file.",
        ),
        production: bool | None = typer.Option(
            None,
            "--production/--no-production",
            help="Seed the config with production mode on or off.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Seed the config with this logging level.",
        ),
    ) -> None:
        """Create ``morphc.toml`` from the packaged defaults."""

        try:
            outcome = init_config(
                directory=directory,
                force=force,
                log_level=log_level,
                production=production,
            )
        except (ValidationError, OSError) as exc:
            typer.secho(f"Failed to write config: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc

        if outcome.written:
            typer.secho(f"Wrote {outcome.path}", fg=typer.colors.GREEN, bold=True)
        else:
            typer.secho(
                f"{outcome.path} already exists; left untouched (use --force)",
                fg=typer.colors.YELLOW,
            )
        typer.echo(f"  log level: {outcome.config.log_level}")
        typer.echo(f"  production: {outcome.config.compiler.production_mode}")

    return app


__all__ = ["create_app", "resolve_config"]
