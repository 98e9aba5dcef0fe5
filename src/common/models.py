"""Shared Pydantic data models for the CTA auto-insertion engine.

These models define the data contracts between the record store,
render-time chain construction and the view-time orchestrator.
All modules import from here.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator


# === Enums ===

class CTAStatus(str, Enum):
    """Publication status of a CTA record."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class CTARole(str, Enum):
    """Authoring role. Only primary records can start a chain."""
    PRIMARY = "primary"
    FALLBACK_ONLY = "fallback-only"


class TaxonomyMode(str, Enum):
    """How taxonomy targets are applied."""
    INCLUDE = "include"
    EXCLUDE = "exclude"


class InsertionDirection(str, Enum):
    """Which end of the content the position is counted from."""
    FORWARD = "forward"
    REVERSE = "reverse"


class OverflowPolicy(str, Enum):
    """Behavior when the requested position exceeds the content length."""
    SKIP = "skip"
    CLAMP_TO_END = "clamp-to-end"


class ConditionDatatype(str, Enum):
    """Datatypes understood by the condition compiler."""
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    STRING = "string"
    DATE = "date"
    REGEX = "regex"


# Stored records written before the rename use "end" for clamp-to-end
_LEGACY_OVERFLOW_VALUES = {"end": OverflowPolicy.CLAMP_TO_END.value}


def parse_overflow_policy(value) -> OverflowPolicy:
    """Coerce a stored or authored overflow value, accepting legacy names."""
    if isinstance(value, OverflowPolicy):
        return value
    return OverflowPolicy(_LEGACY_OVERFLOW_VALUES.get(value, value))


# === Records ===

class StorageCondition(BaseModel):
    """A single client-storage predicate, as authored.

    Operator and datatype are kept as raw strings; the condition compiler
    normalizes them.
    """
    key: str = ""
    operator: str = "="
    value: Union[bool, int, float, str, None] = ""
    datatype: str = ConditionDatatype.STRING.value


class CTARecord(BaseModel):
    """The unit of authoring: one promotional block with its rules."""
    id: int
    name: str = ""
    content: str = ""
    status: CTAStatus = CTAStatus.ACTIVE
    role: CTARole = CTARole.PRIMARY
    content_type_targets: list[str] = Field(default_factory=list)
    taxonomy_mode: TaxonomyMode = TaxonomyMode.INCLUDE
    taxonomy_targets: list[int] = Field(default_factory=list)
    storage_conditions: list[StorageCondition] = Field(default_factory=list)
    insertion_direction: InsertionDirection = InsertionDirection.FORWARD
    insertion_position: int = Field(default=3, ge=1)
    overflow_policy: OverflowPolicy = OverflowPolicy.CLAMP_TO_END
    fallback_id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("overflow_policy", mode="before")
    @classmethod
    def _accept_legacy_overflow(cls, value):
        if isinstance(value, str):
            return parse_overflow_policy(value)
        return value

    @property
    def is_active(self) -> bool:
        return self.status == CTAStatus.ACTIVE

    @property
    def has_conditions(self) -> bool:
        return bool(self.storage_conditions)


class DocumentContext(BaseModel):
    """What the document provider knows about the page being rendered."""
    document_id: Union[int, str, None] = None
    content_type: str = "post"
    taxonomy_terms: list[int] = Field(default_factory=list)
    opt_out: bool = Field(
        default=False,
        description="Per-document flag disabling every auto-inserted CTA",
    )
