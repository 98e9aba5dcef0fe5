# Inserter — content parsing, position math and CTA markup
"""
Content element parsing and insertion-point calculation.

compute_insertion_point is the one implementation of position math; both the
build-time ContentInserter and the view-time orchestrator use it.
"""

from .elements import EXCLUDED_TAGS, MEDIA_TAGS, is_empty_element, parse_content_elements
from .inserter import ContentInserter
from .markup import (
    HIGHLIGHT_SELECTOR,
    find_highlight_element,
    has_highlight_marker,
    sanitize_content,
)
from .position import InsertionPoint, compute_insertion_point

__all__ = [
    "EXCLUDED_TAGS",
    "MEDIA_TAGS",
    "is_empty_element",
    "parse_content_elements",
    "ContentInserter",
    "HIGHLIGHT_SELECTOR",
    "find_highlight_element",
    "has_highlight_marker",
    "sanitize_content",
    "InsertionPoint",
    "compute_insertion_point",
]
