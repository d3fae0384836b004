"""Logging helpers for :mod:`morphc`.

The compiler core only ever emits structured events through :func:`get_logger`;
deciding where those events end up (console, JSON file, nowhere) belongs to
the caller, which is why handler wiring lives in :func:`configure_logging`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

from rich.console import Console
from rich.logging import RichHandler
import structlog

Logger = structlog.stdlib.BoundLogger

_CONSOLE_PROCESSOR = structlog.dev.ConsoleRenderer(colors=False)
_FILE_PROCESSOR = structlog.processors.JSONRenderer(sort_keys=True)
_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso", utc=True)

_SHARED_PRE_CHAIN = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    _TIMESTAMPER,
)


def _normalize_level(level: str) -> int:
    """Return the logging module level constant for ``level``.

    Raises:
        ValueError: If the level name is not recognized.
    """

    normalized = level.strip().upper()
    value = logging.getLevelName(normalized)
    if isinstance(value, str):  # ``getLevelName`` echoes unknown names.
        raise ValueError(f"Unsupported log level: {level!r}")
    return value


def _replace_handlers(
    root: logging.Logger,
    handlers: Iterable[logging.Handler],
) -> None:
    """Swap the root handlers for ``handlers``, closing the old ones."""

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)


def _configure_structlog() -> None:
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            *_SHARED_PRE_CHAIN,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _formatter(processor: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=processor,
        foreign_pre_chain=list(_SHARED_PRE_CHAIN),
    )


def _build_console_handler(
    level: int,
    console: Console | None = None,
) -> RichHandler:
    """Return a Rich-backed handler writing to stderr by default."""

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        enable_link_path=False,
        log_time_format="%H:%M:%S",
    )
    handler.setLevel(level)
    handler.setFormatter(_formatter(_CONSOLE_PROCESSOR))
    return handler


def _build_file_handler(log_file: Path, level: int) -> logging.FileHandler:
    """Return a handler appending JSON lines to ``log_file``."""

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8", delay=True)
    handler.setLevel(level)
    handler.setFormatter(_formatter(_FILE_PROCESSOR))
    return handler


def configure_logging(
    *,
    level: str = "WARNING",
    log_file: str | Path | None = None,
    console: Console | None = None,
) -> None:
    """Configure structlog alongside stdlib logging.

    Console output goes to stderr so generated code written to stdout stays
    clean when the CLI is piped.

    Args:
        level: Log level name to apply to the root logger (case-insensitive).
        log_file: Optional path receiving JSON-formatted log lines.
        console: Optional Rich console override, primarily for testing.

    Raises:
        ValueError: If ``level`` is not a recognized log level name.

    Example:
        >>> configure_logging(level="debug")
        >>> get_logger(__name__).debug("configured", example=True)
    """

    log_level = _normalize_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    _configure_structlog()

    handlers: list[logging.Handler] = [
        _build_console_handler(log_level, console=console)
    ]
    if log_file is not None:
        path = Path(log_file).expanduser().resolve(strict=False)
        handlers.append(_build_file_handler(path, log_level))

    _replace_handlers(root_logger, handlers)

    logging.captureWarnings(True)


def get_logger(name: str | None = None, **initial_context: Any) -> Logger:
    """Return a structured logger bound to an optional context.

    Example:
        >>> logger = get_logger(__name__, stage="styles")
        >>> hasattr(logger, "bind")
        True
    """

    return structlog.get_logger(name).bind(**initial_context)


__all__ = ["Logger", "configure_logging", "get_logger"]
