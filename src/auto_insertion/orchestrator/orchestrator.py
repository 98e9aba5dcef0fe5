"""View-time orchestrator: selects one CTA from the chain and inserts it.

State machine:

    IDLE → CONTAINER_RESOLVED → ELEMENTS_PARSED → CANDIDATE_SELECTED → INSERTED
      └──────────────┴────────────────┴──────────────────┴──────────→ ABORTED

Every structural problem (no payload, no container, no countable elements,
empty chain, position skip) ends in ABORTED without raising. A condition that
cannot be evaluated counts as failed and the next candidate is tried; when
every candidate fails, the last one is used as the terminal fallback.

The orchestrator runs at most once: later calls to ``run()`` return the
first result and leave the document untouched.

Usage:
    orchestrator = AutoInsertOrchestrator(page_html, StorageReader(local_storage))
    result = orchestrator.run()
    html = orchestrator.html()
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from src.common.config import settings
from src.common.errors import PayloadError
from src.common.logging import setup_logging

from ..chain.models import ChainDescriptor, ChainEntry
from ..chain.payload import read_payload
from ..conditions import describe_condition, evaluate_condition
from ..inserter.elements import parse_content_elements
from ..inserter.markup import find_highlight_element
from ..inserter.position import InsertionPoint, compute_insertion_point
from ..template_engine import TemplateRenderer
from .events import EVENT_FALLBACK_USED, EVENT_SHOWN, CTAEvent, EventDispatcher

logger = setup_logging(module_name="orchestrator")

Reader = Callable[[str], Any]


class OrchestratorState(str, Enum):
    """Lifecycle states of one orchestrator run."""
    IDLE = "idle"
    CONTAINER_RESOLVED = "container_resolved"
    ELEMENTS_PARSED = "elements_parsed"
    CANDIDATE_SELECTED = "candidate_selected"
    INSERTED = "inserted"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Selection:
    """The chain entry chosen for this page view."""
    index: int
    entry: ChainEntry
    matched: bool  # False when chosen as terminal fallback


@dataclass
class InsertionResult:
    """Outcome of an orchestrator run."""
    state: OrchestratorState
    reason: str = ""
    cta_id: Optional[int] = None
    chain_index: Optional[int] = None
    chain_length: int = 0
    element_count: int = 0
    insertion_index: Optional[int] = None
    wrapper: Optional[Tag] = field(default=None, repr=False)

    @property
    def inserted(self) -> bool:
        return self.state == OrchestratorState.INSERTED

    @property
    def fallback_used(self) -> bool:
        return self.inserted and bool(self.chain_index)


def select_candidate(chain: ChainDescriptor, read: Reader) -> Optional[Selection]:
    """Pick the first entry whose conditions pass, else the last entry.

    Returns None only for an empty chain.
    """
    for index, entry in enumerate(chain.entries):
        if not entry.has_conditions:
            logger.debug("CTA #%d has no storage conditions - selected", entry.cta_id)
            return Selection(index=index, entry=entry, matched=True)

        try:
            passed = evaluate_condition(entry.compiled_condition_expr, read)
        except Exception as e:
            logger.debug("Error evaluating CTA #%d, trying next: %s", entry.cta_id, e)
            continue

        if passed:
            logger.debug(
                "CTA #%d conditions passed - selected: %s",
                entry.cta_id,
                describe_condition(entry.compiled_condition_expr),
            )
            return Selection(index=index, entry=entry, matched=True)
        logger.debug("CTA #%d conditions failed - trying next", entry.cta_id)

    if not chain.entries:
        return None

    last = len(chain.entries) - 1
    logger.debug("No CTAs matched - using last CTA #%d", chain.entries[last].cta_id)
    return Selection(index=last, entry=chain.entries[last], matched=False)


class AutoInsertOrchestrator:
    """Performs the one-time insertion of a CTA into a rendered page."""

    def __init__(
        self,
        document: BeautifulSoup | str,
        reader: Reader,
        chain: Optional[ChainDescriptor] = None,
        presenter: Any = None,
        events: Optional[EventDispatcher] = None,
        fallback_selectors: Optional[list[str]] = None,
        payload_element_id: Optional[str] = None,
        start_delay_ms: Optional[int] = None,
        renderer: Optional[TemplateRenderer] = None,
    ):
        """Initialize the orchestrator.

        Args:
            document: Rendered page, parsed or as HTML
            reader: Client storage lookup, ``read(key) -> value | None``
            chain: Chain to use; read from the page payload when omitted
            presenter: Highlight collaborator with ``initialize_cta(element)``
            events: Analytics dispatcher
            fallback_selectors: Generic container selectors tried after the
                                chain's own selector
            payload_element_id: Id of the payload block in the page
            start_delay_ms: Delay used by ``run_deferred``
            renderer: Template renderer for the wrapper markup
        """
        if isinstance(document, str):
            document = BeautifulSoup(document, "lxml")
        cfg = settings.auto_insert

        self.document = document
        self.reader = reader
        self.presenter = presenter
        self.events = events or EventDispatcher()
        self.fallback_selectors = (
            list(cfg.fallback_selectors) if fallback_selectors is None else fallback_selectors
        )
        self.payload_element_id = payload_element_id or cfg.payload_element_id
        self.start_delay_ms = cfg.start_delay_ms if start_delay_ms is None else start_delay_ms
        self.renderer = renderer or TemplateRenderer()

        self._chain = chain
        self._state = OrchestratorState.IDLE
        self._result: Optional[InsertionResult] = None

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def result(self) -> Optional[InsertionResult]:
        return self._result

    def html(self) -> str:
        """Serialize the (possibly modified) document."""
        return str(self.document)

    # --- Entry points ---

    async def run_deferred(self) -> InsertionResult:
        """Wait ``start_delay_ms`` for late client-side rendering, then run."""
        if self.start_delay_ms:
            await asyncio.sleep(self.start_delay_ms / 1000)
        return self.run()

    def run(self) -> InsertionResult:
        """Run the state machine once. Later calls return the same result."""
        if self._result is not None:
            return self._result
        self._result = self._execute()
        return self._result

    # --- State machine ---

    def _execute(self) -> InsertionResult:
        try:
            chain = self._chain if self._chain is not None else read_payload(
                self.document, self.payload_element_id
            )
        except PayloadError as e:
            return self._abort(f"No usable chain payload: {e}")

        container = self.find_content_container(chain.content_container_selector)
        if container is None:
            return self._abort("Content container not found", chain)
        self._state = OrchestratorState.CONTAINER_RESOLVED

        elements = parse_content_elements(container)
        if not elements:
            return self._abort("No content elements found", chain)
        self._state = OrchestratorState.ELEMENTS_PARSED
        logger.debug("Found %d content elements", len(elements))

        selection = select_candidate(chain, self.reader)
        if selection is None:
            return self._abort("No CTAs in fallback chain", chain, len(elements))
        self._state = OrchestratorState.CANDIDATE_SELECTED

        entry = selection.entry
        point = compute_insertion_point(
            len(elements),
            entry.insertion_direction,
            entry.insertion_position,
            entry.overflow_policy,
        )
        if point.skip:
            return self._abort(
                f"Position {entry.insertion_position} ({entry.insertion_direction.value}) "
                f"exceeds content length, skipping CTA #{entry.cta_id}",
                chain,
                len(elements),
            )

        wrapper = self._insert(elements, selection, point, chain.chain_length)
        self._state = OrchestratorState.INSERTED
        self._notify(wrapper, selection, chain.chain_length)

        return InsertionResult(
            state=self._state,
            cta_id=entry.cta_id,
            chain_index=selection.index,
            chain_length=chain.chain_length,
            element_count=len(elements),
            insertion_index=point.index,
            wrapper=wrapper,
        )

    def find_content_container(self, preferred_selector: str) -> Optional[Tag]:
        """Try the preferred selector, then the generic fallbacks, in order."""
        for selector in [preferred_selector, *self.fallback_selectors]:
            if not selector:
                continue
            try:
                container = self.document.select_one(selector)
            except SelectorSyntaxError as e:
                logger.debug("Invalid container selector %r: %s", selector, e)
                continue
            if container is not None:
                logger.debug("Found content container: %s", selector)
                return container
        return None

    def _insert(
        self,
        elements: list[Tag],
        selection: Selection,
        point: InsertionPoint,
        chain_length: int,
    ) -> Tag:
        wrapper_html = self.renderer.render_wrapper(
            selection.entry,
            chain_index=selection.index,
            chain_length=chain_length,
        )
        wrapper = BeautifulSoup(wrapper_html, "html.parser").find("div")

        if point.is_append(len(elements)):
            elements[-1].insert_after(wrapper)
        else:
            elements[point.index].insert_before(wrapper)
        return wrapper

    def _notify(self, wrapper: Tag, selection: Selection, chain_length: int) -> None:
        entry = selection.entry

        highlight = find_highlight_element(wrapper)
        if highlight is not None and self.presenter is not None:
            logger.debug("Initializing highlight feature for CTA #%d", entry.cta_id)
            try:
                self.presenter.initialize_cta(highlight)
            except Exception as e:
                logger.warning("Highlight activation failed for CTA #%d: %s", entry.cta_id, e)

        event = CTAEvent(
            cta_id=entry.cta_id,
            chain_index=selection.index,
            chain_length=chain_length,
        )
        self.events.emit(EVENT_SHOWN, event)

        if selection.index > 0:
            self.events.emit(EVENT_FALLBACK_USED, event)
            logger.info(
                "CTA #%d inserted using fallback (position %d of %d)",
                entry.cta_id,
                selection.index,
                chain_length,
            )
        else:
            logger.info("CTA #%d inserted (primary CTA)", entry.cta_id)

    def _abort(
        self,
        reason: str,
        chain: Optional[ChainDescriptor] = None,
        element_count: int = 0,
    ) -> InsertionResult:
        logger.debug("Auto-insert aborted: %s", reason)
        self._state = OrchestratorState.ABORTED
        return InsertionResult(
            state=self._state,
            reason=reason,
            chain_length=chain.chain_length if chain is not None else 0,
            element_count=element_count,
        )


def run_auto_insert(
    page_html: str,
    reader: Reader,
    **kwargs: Any,
) -> tuple[str, InsertionResult]:
    """
    Convenience function: run the orchestrator over a page.

    Args:
        page_html: Rendered page containing the chain payload
        reader: Client storage lookup
        **kwargs: Passed to AutoInsertOrchestrator

    Returns:
        (resulting HTML, InsertionResult)
    """
    orchestrator = AutoInsertOrchestrator(page_html, reader, **kwargs)
    result = orchestrator.run()
    return orchestrator.html(), result
