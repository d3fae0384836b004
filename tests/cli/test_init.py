"""Tests for :mod:`morphc.cli.init`."""

from __future__ import annotations

import tomllib
from pathlib import Path

from morphc.cli.init import init_config


def test_init_config_seeds_defaults(tmp_path: Path) -> None:
    outcome = init_config(directory=tmp_path / "app")

    assert outcome.written is True
    rendered = tomllib.loads(outcome.path.read_text(encoding="utf-8"))
    assert rendered["log_level"] == "WARNING"
    assert rendered["compiler"]["hash_mode"] == "development"
    assert rendered["cache"]["max_entries"] == 100


def test_init_config_force_overwrites(tmp_path: Path) -> None:
    init_config(directory=tmp_path)
    (tmp_path / "morphc.toml").write_text("", encoding="utf-8")

    skipped = init_config(directory=tmp_path)
    forced = init_config(directory=tmp_path, force=True, log_level="debug")

    assert skipped.written is False
    assert forced.written is True
    rendered = tomllib.loads(forced.path.read_text(encoding="utf-8"))
    assert rendered["log_level"] == "DEBUG"
