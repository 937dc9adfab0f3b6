"""Tests for the HTML fragment sanitizer and plain-text extraction."""

from __future__ import annotations

import pytest

from src.review_bot.services.html_sanitizer import EMPTY_FALLBACK, html_to_text, sanitize_html


# ── Empty / plain input ──────────────────────────────────────────────────────


@pytest.mark.parametrize("raw", ["", "   \n", None, 42, ["<p>x</p>"]])
def test_empty_or_non_string_input_returns_fallback(raw):
    assert sanitize_html(raw) == EMPTY_FALLBACK


def test_plain_text_is_wrapped_in_paragraph():
    assert sanitize_html("hello") == "<p>hello</p>"


# ── Escaping ─────────────────────────────────────────────────────────────────


def test_script_tag_stays_escaped():
    result = sanitize_html("<script>alert(1)</script>")
    assert "<script" not in result
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in result


def test_double_sanitize_never_produces_live_script():
    once = sanitize_html("<p>hi</p><script>alert(1)</script>")
    twice = sanitize_html(once)
    assert "<script" not in once
    assert "<script" not in twice


def test_allowed_tags_are_reopened():
    raw = "<h2>Decisions</h2><ul><li><strong>Use</strong> gRPC</li></ul>"
    assert sanitize_html(raw) == raw


def test_disallowed_tags_mixed_with_allowed_stay_escaped():
    result = sanitize_html('<p>See <a href="x">link</a></p>')
    assert result.startswith("<p>")
    assert "&lt;a href=\"x\"&gt;link&lt;/a&gt;" in result


def test_event_handler_attributes_are_stripped():
    result = sanitize_html('<p onclick="steal()" class="note">text</p>')
    assert "onclick" not in result
    assert result == '<p class="note">text</p>'


def test_slash_separated_event_handler_is_stripped():
    result = sanitize_html('<p/onclick="steal()">text</p>')
    assert "onclick" not in result
    assert result == "<p>text</p>"


def test_only_allow_listed_attributes_survive():
    result = sanitize_html("<span style=\"x\" class=note title='a \"b\"' id=x>t</span>")
    assert result == '<span class="note" title="a &quot;b&quot;">t</span>'


def test_quoted_attribute_value_with_angle_bracket_stays_embeddable():
    result = sanitize_html('<p title="a>b">hi</p>')
    assert result == '<p title="a&gt;b">hi</p>'


def test_unterminated_attribute_quote_stays_escaped():
    result = sanitize_html('<p title="oops>hi</p>')
    assert "<p title" not in result
    assert result.startswith("<div>")


def test_bare_ampersand_is_escaped_but_entities_are_kept():
    result = sanitize_html("<p>R&D &amp; ops &#39;quoted&#39;</p>")
    assert result == "<p>R&amp;D &amp; ops &#39;quoted&#39;</p>"


def test_self_closing_and_void_tags_do_not_unbalance():
    raw = "<p>line one<br/>line two</p><hr>"
    assert sanitize_html(raw) == raw


# ── Balance safety net ───────────────────────────────────────────────────────


def test_unbalanced_fragment_is_wrapped_in_div():
    result = sanitize_html("<p>unclosed <strong>bold</p>")
    assert result == "<div><p>unclosed <strong>bold</p></div>"


def test_balanced_fragment_is_not_wrapped():
    assert not sanitize_html("<p>a</p><p>b</p>").startswith("<div>")


# ── html_to_text ─────────────────────────────────────────────────────────────


def test_html_to_text_strips_tags_and_collapses_whitespace():
    markup = "<h1>Title</h1>\n<p>First&nbsp;line &amp; more</p>   <ul><li>item</li></ul>"
    assert html_to_text(markup) == "Title First line & more item"


def test_html_to_text_empty():
    assert html_to_text("") == ""
