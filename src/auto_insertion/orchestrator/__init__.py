# Orchestrator — view-time candidate selection and one-shot insertion

from .events import (
    EVENT_FALLBACK_USED,
    EVENT_SHOWN,
    CTAEvent,
    EventDispatcher,
    logging_listener,
)
from .orchestrator import (
    AutoInsertOrchestrator,
    InsertionResult,
    OrchestratorState,
    Selection,
    run_auto_insert,
    select_candidate,
)

__all__ = [
    "EVENT_FALLBACK_USED",
    "EVENT_SHOWN",
    "CTAEvent",
    "EventDispatcher",
    "logging_listener",
    "AutoInsertOrchestrator",
    "InsertionResult",
    "OrchestratorState",
    "Selection",
    "run_auto_insert",
    "select_candidate",
]
