"""Build-time content inserter.

Splices a chain entry into article HTML on the server, for renderers that do
not run the view-time orchestrator. Position math is shared with the
orchestrator through ``compute_insertion_point``.

Usage:
    inserter = ContentInserter()
    html = inserter.insert(article_html, chain.entries[0])
"""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup

from src.common.logging import setup_logging

from ..chain.models import ChainEntry
from ..template_engine import TemplateRenderer
from .elements import parse_content_elements
from .position import compute_insertion_point

logger = setup_logging(module_name="inserter")


class ContentInserter:
    """Parses an HTML fragment and injects a CTA wrapper at its position."""

    def __init__(self, renderer: Optional[TemplateRenderer] = None):
        self.renderer = renderer or TemplateRenderer()

    def insert(self, content: str, entry: ChainEntry) -> str:
        """Insert the entry's wrapper into ``content``.

        Entries with storage conditions are emitted hidden, with the compiled
        condition attached, so a client can reveal them.

        Args:
            content: Article HTML fragment
            entry: Chain entry to insert

        Returns:
            Modified content, or the original content when there is nothing
            to insert into or the position resolves to skip
        """
        if not content or not content.strip():
            return content

        soup = BeautifulSoup(content, "html.parser")
        elements = parse_content_elements(soup)
        if not elements:
            return content

        point = compute_insertion_point(
            len(elements),
            entry.insertion_direction,
            entry.insertion_position,
            entry.overflow_policy,
        )
        if point.skip:
            logger.info(
                "Position %d (%s) exceeds %d elements, skipping CTA #%d",
                entry.insertion_position,
                entry.insertion_direction.value,
                len(elements),
                entry.cta_id,
            )
            return content

        wrapper_html = self.renderer.render_wrapper(
            entry,
            hidden=entry.has_conditions,
            include_condition=True,
        )
        wrapper = BeautifulSoup(wrapper_html, "html.parser").find("div")

        if point.is_append(len(elements)):
            elements[-1].insert_after(wrapper)
        else:
            elements[point.index].insert_before(wrapper)

        return str(soup)
