"""Auto-Insert Manager — render-time façade over records and chains.

Finds the CTA that starts a document's fallback chain, builds the chain and
emits the payload block the view-time orchestrator reads. Nothing is emitted
when no CTA applies to the document.

Usage:
    manager = AutoInsertManager(CTARepository())
    page = manager.embed_payload(page_html, DocumentContext(document_id=42))
"""

from __future__ import annotations

from typing import Optional

from src.common.config import settings
from src.common.logging import setup_logging
from src.common.models import CTARecord, CTARole, CTAStatus, DocumentContext

from ..chain.builder import FallbackChainBuilder
from ..chain.models import ChainDescriptor
from ..chain.payload import embed_payload, render_payload
from ..inserter.markup import has_highlight_marker
from ..template_engine import TemplateRenderer
from .repository import CTARepository

logger = setup_logging(module_name="auto_insert_manager")


class AutoInsertManager:
    """Selects the starting CTA for a document and publishes its chain."""

    def __init__(
        self,
        repository: CTARepository,
        builder: Optional[FallbackChainBuilder] = None,
        renderer: Optional[TemplateRenderer] = None,
    ):
        """Initialize the manager.

        Args:
            repository: Source of CTA records
            builder: Chain builder; its matcher is also used to pick the start
            renderer: Template renderer for the payload block
        """
        self.repository = repository
        self.builder = builder or FallbackChainBuilder()
        self.renderer = renderer or TemplateRenderer()

    @property
    def matcher(self):
        return self.builder.matcher

    def find_matching_cta(self, document: DocumentContext) -> Optional[CTARecord]:
        """Find the first CTA that applies to the document.

        Primary records are tried in id order. When a primary is not targeted
        at the document, its fallback links are followed and the first active
        record that matches is used instead.
        """
        if document.opt_out:
            logger.debug("Document %s opted out of auto-insertion", document.document_id)
            return None

        for cta in self.repository.get_all(status=CTAStatus.ACTIVE, role=CTARole.PRIMARY):
            if self.matcher.matches(cta, document):
                return cta

            match = self._follow_fallbacks(cta, document)
            if match is not None:
                logger.debug(
                    "CTA #%d not targeted, using fallback CTA #%d", cta.id, match.id
                )
                return match

        return None

    def _follow_fallbacks(
        self, cta: CTARecord, document: DocumentContext
    ) -> Optional[CTARecord]:
        visited = {cta.id}
        current = cta.fallback_id
        hops = 1

        while current is not None and current not in visited and hops < self.builder.max_depth:
            record = self.repository.get(current)
            if record is None or not record.is_active:
                return None
            if self.matcher.matches(record, document):
                return record
            visited.add(current)
            current = record.fallback_id
            hops += 1

        return None

    def build_chain(
        self,
        document: DocumentContext,
        content_selector: Optional[str] = None,
    ) -> ChainDescriptor:
        """Build the document's fallback chain. Empty when no CTA applies."""
        start = self.find_matching_cta(document)
        chain = self.builder.build(
            start.id if start is not None else None,
            self.repository.get,
            document,
            content_selector=content_selector,
        )
        logger.info(
            "Document %s: chain of %d CTA(s) %s",
            document.document_id,
            chain.chain_length,
            chain.cta_ids(),
        )
        return chain

    def render_payload(
        self,
        document: DocumentContext,
        content_selector: Optional[str] = None,
    ) -> str:
        """Payload block for the document, or "" when no CTA applies."""
        chain = self.build_chain(document, content_selector)
        return render_payload(
            chain, settings.auto_insert.payload_element_id, renderer=self.renderer
        )

    def embed_payload(
        self,
        page_html: str,
        document: DocumentContext,
        content_selector: Optional[str] = None,
    ) -> str:
        """Return ``page_html`` with the document's payload placed in its body."""
        return embed_payload(page_html, self.render_payload(document, content_selector))

    def requires_highlight_assets(self, document: DocumentContext) -> bool:
        """True when any CTA in the document's chain uses the highlight effect."""
        chain = self.build_chain(document)
        return any(has_highlight_marker(entry.content) for entry in chain.entries)
