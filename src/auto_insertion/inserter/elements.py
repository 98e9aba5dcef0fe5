"""Content element model: which children of a container count for positioning."""

from __future__ import annotations

from bs4 import Tag

# Never counted, regardless of content
EXCLUDED_TAGS = frozenset({"script", "style", "noscript"})

# Count as content even without any text
MEDIA_TAGS = frozenset({
    "img",
    "iframe",
    "video",
    "audio",
    "embed",
    "object",
    "svg",
    "canvas",
    "picture",
})


def is_empty_element(element: Tag) -> bool:
    """True when the element has no text and no embedded media."""
    if element.get_text(strip=True):
        return False

    if element.name in MEDIA_TAGS:
        return False

    return element.find(list(MEDIA_TAGS)) is None


def parse_content_elements(container: Tag) -> list[Tag]:
    """Return the countable direct children of a content container.

    Text nodes, comments, script/style/noscript tags and empty elements are
    dropped before any position math runs.
    """
    elements = []
    for child in container.children:
        if not isinstance(child, Tag):
            continue
        if child.name in EXCLUDED_TAGS:
            continue
        if is_empty_element(child):
            continue
        elements.append(child)
    return elements
