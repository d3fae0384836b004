"""Shared pytest fixtures for compiler tests."""

from __future__ import annotations

import logging
from textwrap import dedent
from typing import Iterator

import pytest

from morphc.compiler import GrammarLoader, MorphCompiler

_ENV_VARS = (
    "NODE_ENV",
    "MORPHC_LOG_LEVEL",
    "MORPHC_PRODUCTION",
    "MORPHC_HASH_MODE",
    "MORPHC_SOURCE_MAPS",
    "MORPHC_INCLUDE_HANDSHAKE",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep host environment variables out of configuration tests."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


@pytest.fixture
def loader() -> GrammarLoader:
    """Return a grammar loader, skipping when grammars are not installed."""

    pytest.importorskip("tree_sitter_languages")
    return GrammarLoader()


@pytest.fixture
def compiler(loader: GrammarLoader) -> MorphCompiler:
    return MorphCompiler(loader=loader)


@pytest.fixture
def card_document() -> str:
    """A component exercising every section kind."""

    return dedent(
        """\
        <div class="card {{ state }}">
          <h2 class="title">{{ title }}</h2>
          <ul>{{ items : [], cardItem, #, [] : list }}</ul>
        </div>

        <script>
        function cardItem(item) {
          return `<li>${item}</li>`;
        }
        const option = `<option>{{x}}</option>`;
        </script>

        <script type="application/json">
        {
          // demo data
          "title": "Hello",
          'items': ["a", "b",],
        }
        </script>

        <style>
        .card { color: var(--card-fg); }
        .card .title { font-weight: bold; }
        </style>
        """
    )
