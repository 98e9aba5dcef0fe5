"""Tests for content element parsing, markup helpers and the build-time inserter.

Tests cover:
- Element filter (script/style/noscript, empty elements, media)
- Content sanitization and highlight marker detection
- Build-time insertion, hidden conditional wrappers, skip behavior
"""

import json

import pytest
from bs4 import BeautifulSoup

from src.auto_insertion.chain import FallbackChainBuilder
from src.auto_insertion.inserter import (
    ContentInserter,
    find_highlight_element,
    has_highlight_marker,
    is_empty_element,
    parse_content_elements,
    sanitize_content,
)


# === Fixtures ===


@pytest.fixture
def entry_for(make_record, records_lookup, document):
    """Build the chain entry for a single record."""

    def _entry(**overrides):
        record = make_record(1, **overrides)
        chain = FallbackChainBuilder().build(1, records_lookup([record]), document)
        return chain.entries[0]

    return _entry


@pytest.fixture
def inserter() -> ContentInserter:
    return ContentInserter()


def wrapper_position(html: str) -> int:
    """Index of the CTA wrapper among the top-level elements of ``html``."""
    soup = BeautifulSoup(html, "html.parser")
    tags = soup.find_all(True, recursive=False)
    for index, tag in enumerate(tags):
        if "cta-highlights-wrapper" in tag.get("class", []):
            return index
    return -1


# === Test: Elements ===


class TestElements:
    def test_filter(self, sample_article):
        soup = BeautifulSoup(sample_article, "html.parser")
        elements = parse_content_elements(soup)
        assert [el.name for el in elements] == ["p", "p", "p", "figure", "p"]

    def test_media_only_elements_count(self):
        soup = BeautifulSoup('<p><img src="a.png"></p><img src="b.png"><div><video></video></div>', "html.parser")
        assert len(parse_content_elements(soup)) == 3

    def test_empty_element(self):
        soup = BeautifulSoup("<p> \n </p><div><span></span></div>", "html.parser")
        assert all(is_empty_element(tag) for tag in soup.find_all(["p", "div"]))

    def test_noscript_excluded(self):
        soup = BeautifulSoup("<noscript><p>Enable JS</p></noscript><p>Body</p>", "html.parser")
        assert [el.get_text() for el in parse_content_elements(soup)] == ["Body"]


# === Test: Markup ===


class TestSanitize:
    def test_strips_active_content(self):
        html = (
            '<div onmouseover="x()"><a href="javascript:alert(1)">a</a>'
            '<a href="/ok">b</a><!-- note --><iframe src="//x"></iframe></div>'
        )
        assert sanitize_content(html) == '<div><a>a</a><a href="/ok">b</a></div>'

    def test_empty(self):
        assert sanitize_content("") == ""

    def test_keeps_regular_markup(self):
        html = '<p class="lead">Join <strong>now</strong></p>'
        assert sanitize_content(html) == html


class TestHighlightMarker:
    def test_element_marker(self):
        content = '<div class="cta-highlights-wrapper" data-highlight="true">x</div>'
        assert has_highlight_marker(content) is True
        soup = BeautifulSoup(f"<section>{content}</section>", "html.parser")
        assert find_highlight_element(soup.section) is not None

    def test_shortcode_marker(self):
        assert has_highlight_marker('[cta_highlights template="default"]') is True

    def test_no_marker(self):
        assert has_highlight_marker("<p>Plain</p>") is False
        assert has_highlight_marker("") is False


# === Test: ContentInserter ===


class TestContentInserter:
    def test_forward_insert(self, inserter, entry_for, sample_article):
        html = inserter.insert(sample_article, entry_for(insertion_position=2))
        soup = BeautifulSoup(html, "html.parser")
        wrapper = soup.find("div", class_="cta-highlights-wrapper")

        assert wrapper["data-cta-id"] == "1"
        assert wrapper["data-auto-insert"] == "true"
        assert wrapper.find_next_sibling("p").get_text() == "Third paragraph."
        assert "style" not in wrapper.attrs

    def test_reverse_insert(self, inserter, entry_for):
        content = "<p>1</p><p>2</p><p>3</p>"
        html = inserter.insert(content, entry_for(insertion_direction="reverse", insertion_position=1))
        assert wrapper_position(html) == 2

    def test_append_when_clamped(self, inserter, entry_for):
        content = "<p>1</p><p>2</p>"
        html = inserter.insert(content, entry_for(insertion_position=10))
        assert wrapper_position(html) == 2

    def test_skip_returns_content_unchanged(self, inserter, entry_for):
        content = "<p>1</p><p>2</p>"
        html = inserter.insert(content, entry_for(insertion_position=10, overflow_policy="skip"))
        assert html == content

    def test_empty_content_unchanged(self, inserter, entry_for):
        assert inserter.insert("", entry_for()) == ""
        assert inserter.insert("<p> </p>", entry_for()) == "<p> </p>"

    def test_conditional_wrapper_is_hidden(self, inserter, entry_for):
        entry = entry_for(
            insertion_position=1,
            storage_conditions=[{"key": "member", "operator": "=", "value": "true", "datatype": "boolean"}],
        )
        html = inserter.insert("<p>1</p><p>2</p>", entry)
        wrapper = BeautifulSoup(html, "html.parser").find("div", class_="cta-highlights-wrapper")

        assert wrapper["style"] == "display:none;"
        assert wrapper["data-has-storage-condition"] == "true"
        assert json.loads(wrapper["data-storage-condition"]) == entry.compiled_condition_expr
