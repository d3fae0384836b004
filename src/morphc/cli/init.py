"""Helpers for the ``morphc init`` command."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from morphc.core.config import (
    AppConfig,
    USER_CONFIG_NAME,
    load_config,
    load_packaged_defaults,
    render_user_config,
)


@dataclass(frozen=True, slots=True)
class InitOutcome:
    config: AppConfig
    path: Path
    written: bool


def init_config(
    *,
    directory: Path,
    force: bool = False,
    log_level: str | None = None,
    production: bool | None = None,
) -> InitOutcome:
    """Write a commented ``morphc.toml`` into ``directory``.

    An existing file is left untouched unless ``force`` is set.

    Example:
        >>> import tempfile
        >>> from pathlib import Path
        >>> outcome = init_config(directory=Path(tempfile.mkdtemp()))
        >>> outcome.written, outcome.path.name
        (True, 'morphc.toml')
    """

    cli_overrides: dict[str, object] = {}
    if log_level:
        cli_overrides["log_level"] = log_level
    if production is not None:
        cli_overrides["compiler"] = {"production_mode": production}

    config = load_config(
        defaults=load_packaged_defaults(),
        cli_overrides=cli_overrides,
    )

    path = directory / USER_CONFIG_NAME
    if path.exists() and not force:
        return InitOutcome(config=config, path=path, written=False)

    directory.mkdir(parents=True, exist_ok=True)
    path.write_text(render_user_config(config), encoding="utf-8")
    return InitOutcome(config=config, path=path, written=True)


__all__ = ["InitOutcome", "init_config"]
