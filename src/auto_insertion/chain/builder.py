"""Fallback chain builder.

Walks ``fallback_id`` links from a starting CTA and materializes the
candidates into an immutable ChainDescriptor. The record graph is untrusted:
self-references, cycles and long chains all end in a silent, bounded stop.

Stop conditions (the chain built so far is always returned):
    1. next record missing or inactive
    2. next record rejected by targeting for this document
    3. next id already visited (cycle, including self-reference)
    4. max_depth entries collected

Usage:
    builder = FallbackChainBuilder()
    chain = builder.build(start_id=7, lookup=repository.get, document=context)
"""

from __future__ import annotations

from typing import Callable, Optional

from src.common.config import settings
from src.common.logging import setup_logging
from src.common.models import CTARecord, DocumentContext

from ..conditions import compile_conditions, is_constant_true
from ..inserter.markup import sanitize_content
from ..targeting import TargetingMatcher
from .models import ChainDescriptor, ChainEntry

logger = setup_logging(module_name="chain.builder")

Lookup = Callable[[int], Optional[CTARecord]]


class FallbackChainBuilder:
    """Builds cycle-safe, depth-bounded fallback chains."""

    def __init__(
        self,
        matcher: Optional[TargetingMatcher] = None,
        max_depth: Optional[int] = None,
        content_selector: Optional[str] = None,
    ):
        """Initialize the builder.

        Args:
            matcher: Targeting matcher applied at every hop
            max_depth: Default maximum chain length
                       (defaults to auto_insert.max_fallback_depth)
            content_selector: Default content container selector
                              (defaults to auto_insert.content_selector)
        """
        self.matcher = matcher or TargetingMatcher()
        self.max_depth = (
            settings.auto_insert.max_fallback_depth if max_depth is None else max_depth
        )
        self.content_selector = content_selector or settings.auto_insert.content_selector

    def build(
        self,
        start_id: Optional[int],
        lookup: Lookup,
        document: DocumentContext,
        max_depth: Optional[int] = None,
        content_selector: Optional[str] = None,
    ) -> ChainDescriptor:
        """Materialize the chain starting at ``start_id``.

        Args:
            start_id: First CTA id, or None for an empty chain
            lookup: Returns the record for an id, or None when missing
            document: Targeting context of the page being rendered
            max_depth: Maximum number of entries for this build
            content_selector: Container selector written into the descriptor

        Returns:
            ChainDescriptor, possibly empty
        """
        depth = self.max_depth if max_depth is None else max_depth
        visited: set[int] = set()
        entries: list[ChainEntry] = []
        current = start_id

        while current is not None and current not in visited and len(entries) < depth:
            record = lookup(current)

            if record is None or not record.is_active:
                logger.debug("Chain stops at CTA #%s: missing or inactive", current)
                break

            if not self.matcher.matches(record, document):
                logger.debug(
                    "Chain stops at CTA #%s: not targeted at document %s",
                    current,
                    document.document_id,
                )
                break

            entries.append(self.to_entry(record))
            visited.add(current)
            current = record.fallback_id

        if current is not None and current in visited:
            logger.debug("Chain stops at CTA #%s: already visited", current)
        elif current is not None and len(entries) >= depth:
            logger.debug("Chain stops: depth limit %d reached", depth)

        return ChainDescriptor(
            document_id=document.document_id,
            content_container_selector=content_selector or self.content_selector,
            entries=tuple(entries),
        )

    def to_entry(self, record: CTARecord) -> ChainEntry:
        """Derive the serializable chain entry for one record."""
        expr = compile_conditions(record.storage_conditions)
        return ChainEntry(
            cta_id=record.id,
            content=sanitize_content(record.content),
            compiled_condition_expr=expr,
            has_conditions=not is_constant_true(expr),
            insertion_direction=record.insertion_direction,
            insertion_position=record.insertion_position,
            overflow_policy=record.overflow_policy,
        )


def build_chain(
    start_id: Optional[int],
    lookup: Lookup,
    document: DocumentContext,
    max_depth: Optional[int] = None,
) -> ChainDescriptor:
    """
    Convenience function to build a chain with default settings.

    Args:
        start_id: First CTA id
        lookup: Record lookup callable
        document: Targeting context
        max_depth: Maximum chain length

    Returns:
        ChainDescriptor
    """
    builder = FallbackChainBuilder()
    return builder.build(start_id, lookup, document, max_depth=max_depth)
