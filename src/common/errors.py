"""Exception types shared across the auto-insertion engine."""

from __future__ import annotations


class AutoInsertError(Exception):
    """Base class for all auto-insertion errors."""


class ConditionEvaluationError(AutoInsertError):
    """A compiled storage condition could not be evaluated."""


class PayloadError(AutoInsertError):
    """The embedded chain payload is missing or malformed."""


class RecordNotFoundError(AutoInsertError):
    """A CTA record with the requested id does not exist."""

    def __init__(self, cta_id: int):
        super().__init__(f"CTA record {cta_id} not found")
        self.cta_id = cta_id


class ReferentialIntegrityError(AutoInsertError):
    """A fallback reference points at a record that does not exist."""

    def __init__(self, fallback_id: int):
        super().__init__(f"Fallback CTA {fallback_id} does not exist")
        self.fallback_id = fallback_id
