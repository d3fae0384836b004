"""Interfaces for the systems that consume compilation output.

Bundling, theming and hot reloading live outside the compiler. These types
are the seams they plug into.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .models import CompilationResult

__all__ = ["HotUpdate", "RecordingStyleSink", "StyleSink", "hot_update"]


@runtime_checkable
class StyleSink(Protocol):
    """Receives rewritten CSS for each freshly compiled component."""

    def add(self, component_name: str, css: str) -> None: ...


class RecordingStyleSink:
    """A :class:`StyleSink` keeping the latest CSS per component in memory."""

    def __init__(self) -> None:
        self.styles: dict[str, str] = {}

    def add(self, component_name: str, css: str) -> None:
        self.styles[component_name] = css

    def bundle(self) -> str:
        """Concatenate collected CSS in component-name order."""

        return "\n".join(
            f"/* {name} */\n{css.strip()}"
            for name, css in sorted(self.styles.items())
        )


@dataclass(frozen=True, slots=True)
class HotUpdate:
    """Change notice for a recompiled file."""

    file: str
    has_style_change: bool


def hot_update(
    file: str,
    previous: CompilationResult | None,
    current: CompilationResult,
) -> HotUpdate:
    """Describe how ``current`` differs from ``previous`` for a reloader."""

    if previous is None:
        return HotUpdate(file=file, has_style_change=current.css is not None)
    changed = previous.css != current.css or dict(
        previous.style_exports or {}
    ) != dict(current.style_exports or {})
    return HotUpdate(file=file, has_style_change=changed)
