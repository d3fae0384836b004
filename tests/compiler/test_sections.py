"""Tests for section extraction."""

from __future__ import annotations

from textwrap import dedent

import pytest

from morphc.compiler import (
    ErrorCode,
    GrammarLoader,
    MissingTemplateError,
    ParserUnavailableError,
    StructuredDataParseError,
    extract_sections,
)
from morphc.compiler.sections import derive_component_name, has_meaningful_content


def test_card_document_sections(loader: GrammarLoader, card_document: str) -> None:
    extracted = extract_sections(
        card_document, loader=loader, source_path="src/Card.morph"
    )
    document = extracted.document

    assert document.component_name == "Card"
    assert document.template_markup.startswith('<div class="card {{ state }}">')
    assert document.template_markup.endswith("</div>")
    assert "<script" not in document.template_markup
    assert "<style" not in document.template_markup
    assert "function cardItem" in (document.script_text or "")
    assert document.handshake_data == {"title": "Hello", "items": ["a", "b"]}
    assert ".card .title" in (document.style_text or "")
    assert document.is_style_only is False
    assert len(document.content_hash) == 64
    assert extracted.diagnostics == ()


def test_template_markup_is_byte_exact(loader: GrammarLoader) -> None:
    markup = '<p  data-x=\'1\'>{{ a }}&amp; <b>é</b></p>'
    raw = f"{markup}\n<script>const x = `<i></i>`;</script>"

    document = extract_sections(raw, loader=loader).document

    assert document.template_markup == markup


def test_scripts_are_joined_in_document_order(loader: GrammarLoader) -> None:
    raw = dedent(
        """\
        <script>function a() {}</script>
        <p>{{ x }}</p>
        <script type="module">function b() {}</script>
        <script type="text/x-template"><b>ignored</b></script>
        """
    )

    document = extract_sections(raw, loader=loader).document

    assert document.script_text == "function a() {}\nfunction b() {}"
    assert document.template_markup == "<p>{{ x }}</p>"


def test_style_only_document(loader: GrammarLoader) -> None:
    document = extract_sections(
        "<style>.a{color:red}</style>", loader=loader
    ).document

    assert document.is_style_only is True
    assert document.template_markup == ""
    assert document.style_text == ".a{color:red}"
    assert document.component_name == "component"


def test_comment_only_markup_with_style_is_style_only(loader: GrammarLoader) -> None:
    raw = "<!-- palette -->\n<style>.b{color:blue}</style>"

    assert extract_sections(raw, loader=loader).document.is_style_only is True


def test_script_without_template_is_missing_template(loader: GrammarLoader) -> None:
    raw = "<!-- nothing -->\n<script>function a() {}</script>\n<style>.a{}</style>"

    with pytest.raises(MissingTemplateError) as excinfo:
        extract_sections(raw, loader=loader, source_path="Empty.morph")

    assert excinfo.value.code == ErrorCode.MISSING_TEMPLATE
    assert excinfo.value.file_path == "Empty.morph"


def test_empty_document_is_missing_template(loader: GrammarLoader) -> None:
    with pytest.raises(MissingTemplateError):
        extract_sections("   \n", loader=loader)


def test_template_wrapper_is_unwrapped(loader: GrammarLoader) -> None:
    raw = dedent(
        """\
        <template>
          <section>{{ body }}</section>
        </template>
        <script>function f() {}</script>
        """
    )

    document = extract_sections(raw, loader=loader).document

    assert document.template_markup == "<section>{{ body }}</section>"


def test_extra_blocks_are_reported(loader: GrammarLoader) -> None:
    raw = dedent(
        """\
        <p>{{ x }}</p>
        <script type="application/json">{"x": 1}</script>
        <script type="application/json">{"x": 2}</script>
        <style>.a{}</style>
        <style>.b{}</style>
        """
    )

    extracted = extract_sections(raw, loader=loader)

    assert extracted.document.handshake_data == {"x": 1}
    assert extracted.document.style_text == ".a{}"
    codes = [diagnostic.code for diagnostic in extracted.diagnostics]
    assert codes.count(ErrorCode.DUPLICATE_SECTION) == 2


def test_invalid_handshake_reports_document_position(loader: GrammarLoader) -> None:
    raw = '<p>{{ a }}</p>\n<script type="application/json">\n{ "a": }\n</script>\n'

    with pytest.raises(StructuredDataParseError) as excinfo:
        extract_sections(raw, loader=loader, source_path="Bad.morph")

    error = excinfo.value
    assert error.code == ErrorCode.JSON_PARSE_ERROR
    assert error.location.line == 3
    assert error.location.column == 8
    assert "Bad.morph:3:8" in str(error)


def test_missing_grammar_raises_parser_unavailable() -> None:
    def _no_grammar(language: str) -> object:
        raise RuntimeError(f"no {language} grammar here")

    with pytest.raises(ParserUnavailableError) as excinfo:
        extract_sections("<p></p>", loader=GrammarLoader(factory=_no_grammar))

    assert excinfo.value.language == "html"


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("src/components/Button.morph", "Button"),
        ("Nav.bar.morph", "Nav"),
        ("", "component"),
    ],
)
def test_derive_component_name(path: str, expected: str) -> None:
    assert derive_component_name(path) == expected


def test_meaningful_content_ignores_comments() -> None:
    assert not has_meaningful_content("<!-- a -->\n  <!-- b -->")
    assert has_meaningful_content("<!-- a --> text")
