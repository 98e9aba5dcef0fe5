"""Analytics events emitted after a CTA is inserted."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Callable

from src.common.logging import setup_logging

logger = setup_logging(module_name="orchestrator_events")

EVENT_SHOWN = "cta_auto_insert_shown"
EVENT_FALLBACK_USED = "cta_fallback_used"
EVENT_CATEGORY = "CTA Auto-Insert"


@dataclass(frozen=True)
class CTAEvent:
    """Payload delivered to every listener."""
    cta_id: int
    chain_index: int
    chain_length: int
    event_category: str = EVENT_CATEGORY

    def to_dict(self) -> dict:
        return asdict(self)


Listener = Callable[[str, CTAEvent], None]


class EventDispatcher:
    """Fans events out to zero or more listeners.

    A listener that raises is logged and skipped; the remaining listeners
    still receive the event.
    """

    def __init__(self, listeners: list[Listener] | None = None):
        self._listeners: list[Listener] = list(listeners or [])

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> bool:
        """Remove a listener. Returns True if removed."""
        if listener in self._listeners:
            self._listeners.remove(listener)
            return True
        return False

    def emit(self, event_name: str, event: CTAEvent) -> None:
        logger.debug("Event %s: %s", event_name, event.to_dict())
        for listener in list(self._listeners):
            try:
                listener(event_name, event)
            except Exception as e:
                logger.warning("Listener %r failed on %s: %s", listener, event_name, e)


def logging_listener(event_name: str, event: CTAEvent) -> None:
    """Listener that records events in the application log."""
    logger.info(
        "%s: CTA #%d (chain position %d of %d)",
        event_name,
        event.cta_id,
        event.chain_index + 1,
        event.chain_length,
    )
