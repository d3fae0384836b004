"""Tests for the tolerant handshake JSON reader."""

from __future__ import annotations

import json
from textwrap import dedent

import pytest

from morphc.compiler.jsonish import loads_jsonish, normalize_jsonish


def test_loads_hand_written_json() -> None:
    text = dedent(
        """\
        {
          // defaults shown in the demo page
          'title': "Hello",   /* inline note */
          "tags": ["a", "b",],
        }
        """
    )

    assert loads_jsonish(text) == {"title": "Hello", "tags": ["a", "b"]}


def test_string_contents_are_left_alone() -> None:
    text = '{"url": "http://example.com/a,}", "quote": "it\'s // fine"}'

    assert loads_jsonish(text) == {
        "url": "http://example.com/a,}",
        "quote": "it's // fine",
    }


def test_removed_comments_keep_error_positions() -> None:
    text = '{\n  // note\n  "a": }\n'
    normalized = normalize_jsonish(text)

    assert len(normalized) == len(text)
    with pytest.raises(json.JSONDecodeError) as excinfo:
        loads_jsonish(text)
    assert excinfo.value.lineno == 3
