"""Markup helpers: content sanitization and highlight-marker detection."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment, Tag

# Tags stripped from CTA content together with everything inside them
DISALLOWED_TAGS = (
    "script",
    "style",
    "iframe",
    "object",
    "embed",
    "form",
    "input",
    "textarea",
    "select",
    "link",
    "meta",
    "base",
)

URL_ATTRIBUTES = ("href", "src", "action", "formaction", "xlink:href")

HIGHLIGHT_SELECTOR = '.cta-highlights-wrapper[data-highlight="true"]'

_UNSAFE_URL_RE = re.compile(r"^\s*(javascript|vbscript|data):", re.IGNORECASE)
_SHORTCODE_RE = re.compile(r"\[cta_highlights\b")


def sanitize_content(html: str) -> str:
    """Strip active content from an authored CTA fragment.

    Removes disallowed tags, HTML comments, inline event handlers and
    script-bearing URLs. Everything else is kept as authored.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(list(DISALLOWED_TAGS)):
        if not tag.decomposed:
            tag.decompose()

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        for attr in list(tag.attrs):
            name = attr.lower()
            if name.startswith("on"):
                del tag[attr]
            elif name in URL_ATTRIBUTES and _UNSAFE_URL_RE.match(str(tag[attr])):
                del tag[attr]

    return str(soup)


def find_highlight_element(root: Tag) -> Tag | None:
    """Nested element that asks for the highlight presentation effect."""
    return root.select_one(HIGHLIGHT_SELECTOR)


def has_highlight_marker(content: str) -> bool:
    """True when CTA content carries a highlight element or shortcode.

    The engine never expands ``[cta_highlights ...]`` shortcodes. Authors (or
    the host renderer) must store CTA content with the shortcode already
    rendered to its highlight element; a bare shortcode is inserted as text
    and never reaches the presenter. It still counts here so the host can
    ship highlight assets for pages it renders itself.
    """
    if not content:
        return False
    if _SHORTCODE_RE.search(content):
        return True
    soup = BeautifulSoup(content, "html.parser")
    return find_highlight_element(soup) is not None
