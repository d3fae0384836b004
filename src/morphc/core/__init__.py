"""Core utilities shared across :mod:`morphc`.

The core namespace holds configuration loading and logging setup so the
compiler package stays free of process-level concerns.

Example:
    >>> from morphc.core import get_logger
    >>> logger = get_logger(__name__)
    >>> isinstance(logger, object)
    True
"""

from __future__ import annotations

from .config import AppConfig, CompileOptions, HashMode, load_config
from .logging import configure_logging, get_logger

__all__ = [
    "AppConfig",
    "CompileOptions",
    "HashMode",
    "configure_logging",
    "get_logger",
    "load_config",
]
