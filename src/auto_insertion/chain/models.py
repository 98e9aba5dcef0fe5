"""Data models for the fallback chain descriptor.

The descriptor is the only thing that crosses from render time to view time.
Both models are frozen: a descriptor is built once and then only read.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from src.common.models import InsertionDirection, OverflowPolicy, parse_overflow_policy


class ChainEntry(BaseModel):
    """One candidate in a materialized fallback chain."""
    model_config = ConfigDict(frozen=True)

    cta_id: int
    content: str
    compiled_condition_expr: dict[str, Any]
    has_conditions: bool
    insertion_direction: InsertionDirection
    insertion_position: int = Field(ge=1)
    overflow_policy: OverflowPolicy

    @field_validator("overflow_policy", mode="before")
    @classmethod
    def _accept_legacy_overflow(cls, value):
        return parse_overflow_policy(value) if isinstance(value, str) else value


class ChainDescriptor(BaseModel):
    """Ordered, immutable list of candidates for one document view."""
    model_config = ConfigDict(frozen=True)

    document_id: Union[int, str, None] = None
    content_container_selector: str = ".entry-content"
    entries: tuple[ChainEntry, ...] = ()

    @computed_field
    @property
    def chain_length(self) -> int:
        return len(self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def get_entry(self, index: int) -> Optional[ChainEntry]:
        """Entry at ``index``, or None when out of range."""
        if 0 <= index < len(self.entries):
            return self.entries[index]
        return None

    def cta_ids(self) -> list[int]:
        return [entry.cta_id for entry in self.entries]
