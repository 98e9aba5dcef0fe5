"""Targeting matcher. Decides whether a CTA may run on a document.

Only document-level targeting is checked here (opt-out flag, content type,
taxonomy). Storage conditions depend on client state and are evaluated at
view time by the orchestrator.
"""

from __future__ import annotations

from src.common.models import CTARecord, DocumentContext, TaxonomyMode


class TargetingMatcher:
    """Pure eligibility predicates for CTA records."""

    def matches(self, cta: CTARecord, document: DocumentContext) -> bool:
        """Check if the CTA should be considered for this document."""
        # Opt-out dominates every other rule
        if document.opt_out:
            return False

        if not self.matches_content_type(cta, document):
            return False

        return self.matches_taxonomy(cta, document)

    def matches_content_type(self, cta: CTARecord, document: DocumentContext) -> bool:
        if not cta.content_type_targets:
            return True
        return document.content_type in set(cta.content_type_targets)

    def matches_taxonomy(self, cta: CTARecord, document: DocumentContext) -> bool:
        """Apply include/exclude taxonomy targeting.

        Empty targets restrict nothing in either mode. A document without
        terms never satisfies include-mode and always satisfies exclude-mode.
        """
        if not cta.taxonomy_targets:
            return True

        has_match = bool(set(cta.taxonomy_targets) & set(document.taxonomy_terms))

        if cta.taxonomy_mode == TaxonomyMode.INCLUDE:
            return has_match
        return not has_match
