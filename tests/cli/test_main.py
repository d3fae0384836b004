"""Tests for the :mod:`morphc.__main__` entrypoint."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from morphc.__main__ import main


def test_main_invokes_cli(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["morphc", "init", "--directory", str(tmp_path)])

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 0
    assert (tmp_path / "morphc.toml").is_file()
