"""CTA record repository backed by SQLite.

Stores authored CTA records and serves them to the chain builder. Data is
normalized on the way in: enum-like fields fall back to their defaults,
list fields are stored as JSON, content is sanitized, and ``fallback_id``
must point at an existing record (or be empty). Cycles are allowed; the
chain builder is what keeps them harmless.

Usage:
    repo = CTARepository("data/cta_highlights.db")
    cta_id = repo.insert({"name": "Newsletter", "content": "<p>Join</p>"})
    record = repo.get(cta_id)
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Optional

import yaml

from src.common.database import CTA_TABLE, get_connection, init_db
from src.common.errors import RecordNotFoundError, ReferentialIntegrityError
from src.common.logging import setup_logging
from src.common.models import (
    CTARecord,
    CTARole,
    CTAStatus,
    InsertionDirection,
    OverflowPolicy,
    StorageCondition,
    TaxonomyMode,
    parse_overflow_policy,
)

from ..inserter.markup import sanitize_content

logger = setup_logging(module_name="cta_repository")

_JSON_FIELDS = ("content_type_targets", "taxonomy_targets", "storage_conditions")

_COLUMNS = (
    "name",
    "content",
    "status",
    "role",
    "content_type_targets",
    "taxonomy_mode",
    "taxonomy_targets",
    "storage_conditions",
    "insertion_direction",
    "insertion_position",
    "overflow_policy",
    "fallback_id",
)


def _choice(value: Any, enum_cls, default):
    try:
        return enum_cls(value).value
    except ValueError:
        return default.value


def _overflow_choice(value: Any) -> str:
    try:
        return parse_overflow_policy(value).value
    except ValueError:
        return OverflowPolicy.CLAMP_TO_END.value


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


class CTARepository:
    """CRUD access to CTA records."""

    def __init__(self, db_path: str | None = None):
        """Initialize the repository and make sure the table exists.

        Args:
            db_path: SQLite file path. Defaults to database.db_path in settings.
        """
        self.db_path = db_path
        init_db(db_path)

    # --- Queries ---

    def get(self, cta_id: int) -> Optional[CTARecord]:
        """Get a CTA by id, or None when it does not exist."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                f"SELECT * FROM {CTA_TABLE} WHERE id = ?", (cta_id,)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_record(row) if row else None

    def get_all(
        self,
        status: CTAStatus | str | None = CTAStatus.ACTIVE,
        role: CTARole | str | None = None,
    ) -> list[CTARecord]:
        """Get CTAs ordered by id, optionally filtered by status and role."""
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(CTAStatus(status).value)
        if role is not None:
            clauses.append("role = ?")
            params.append(CTARole(role).value)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute(
                f"SELECT * FROM {CTA_TABLE} {where} ORDER BY id ASC", params
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_record(row) for row in rows]

    def exists(self, cta_id: int) -> bool:
        return self.get(cta_id) is not None

    def require(self, cta_id: int) -> CTARecord:
        """Get a CTA by id.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        record = self.get(cta_id)
        if record is None:
            raise RecordNotFoundError(cta_id)
        return record

    # --- Mutations ---

    def insert(self, data: dict | CTARecord) -> int:
        """Insert a new CTA.

        Returns:
            The new record id

        Raises:
            ReferentialIntegrityError: If fallback_id names a missing record
        """
        prepared = self._prepare_data(self._as_dict(data))
        self._check_fallback(prepared.get("fallback_id"))

        columns = ", ".join(prepared)
        placeholders = ", ".join("?" for _ in prepared)
        conn = get_connection(self.db_path)
        try:
            if prepared:
                cursor = conn.execute(
                    f"INSERT INTO {CTA_TABLE} ({columns}) VALUES ({placeholders})",
                    list(prepared.values()),
                )
            else:
                cursor = conn.execute(f"INSERT INTO {CTA_TABLE} DEFAULT VALUES")
            conn.commit()
            new_id = cursor.lastrowid
        finally:
            conn.close()

        logger.info("Inserted CTA #%d", new_id)
        return new_id

    def update(self, cta_id: int, data: dict | CTARecord) -> bool:
        """Update fields of an existing CTA. Returns False if it does not exist.

        Raises:
            ReferentialIntegrityError: If fallback_id names a missing record
        """
        prepared = self._prepare_data(self._as_dict(data))
        self._check_fallback(prepared.get("fallback_id"))
        if not prepared:
            return self.exists(cta_id)

        assignments = ", ".join(f"{column} = ?" for column in prepared)
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                f"UPDATE {CTA_TABLE} SET {assignments}, updated_at = CURRENT_TIMESTAMP "
                f"WHERE id = ?",
                [*prepared.values(), cta_id],
            )
            conn.commit()
            updated = cursor.rowcount > 0
        finally:
            conn.close()
        return updated

    def delete(self, cta_id: int) -> bool:
        """Delete a CTA and clear fallback references to it."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(f"DELETE FROM {CTA_TABLE} WHERE id = ?", (cta_id,))
            conn.execute(
                f"UPDATE {CTA_TABLE} SET fallback_id = NULL WHERE fallback_id = ?",
                (cta_id,),
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()

        if deleted:
            logger.info("Deleted CTA #%d", cta_id)
        return deleted

    def duplicate(self, cta_id: int) -> int:
        """Copy a CTA under the name "<name> (Copy)". Returns the new id.

        Raises:
            RecordNotFoundError: If the source record does not exist
        """
        record = self.require(cta_id)
        data = self._as_dict(record)
        data["name"] = f"{record.name} (Copy)"
        return self.insert(data)

    # --- Bulk loading ---

    def load_records(self, path: Path) -> dict[Any, int]:
        """Load CTA records from a YAML or JSON file.

        The file holds ``{"ctas": [...]}``. Entries may carry a ``ref`` label
        and point at each other with ``fallback_ref``; labels are resolved to
        the new ids once every record exists. Every ``fallback_ref`` is checked
        before anything is written, so a bad file stores nothing.

        Returns:
            Mapping of ref label (or list position) to new record id
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        entries = [dict(entry) for entry in data.get("ctas", [])]
        refs = {entry.get("ref", position) for position, entry in enumerate(entries)}
        for entry in entries:
            fallback_ref = entry.get("fallback_ref")
            if fallback_ref is not None and fallback_ref not in refs:
                raise ReferentialIntegrityError(fallback_ref)

        ids: dict[Any, int] = {}
        pending: list[tuple[int, Any]] = []
        for position, entry in enumerate(entries):
            ref = entry.pop("ref", position)
            fallback_ref = entry.pop("fallback_ref", None)
            ids[ref] = self.insert(entry)
            if fallback_ref is not None:
                pending.append((ids[ref], fallback_ref))

        for cta_id, fallback_ref in pending:
            self.update(cta_id, {"fallback_id": ids[fallback_ref]})

        logger.info("Loaded %d CTA records from %s", len(entries), path)
        return ids

    # --- Internal helpers ---

    def _check_fallback(self, fallback_id: Optional[int]) -> None:
        if fallback_id is not None and not self.exists(fallback_id):
            raise ReferentialIntegrityError(fallback_id)

    @staticmethod
    def _as_dict(data: dict | CTARecord) -> dict:
        if isinstance(data, CTARecord):
            return data.model_dump(
                mode="json", exclude={"id", "created_at", "updated_at"}
            )
        return dict(data)

    @staticmethod
    def _prepare_data(data: dict) -> dict:
        """Normalize raw input into column values. Unknown keys are ignored."""
        prepared: dict[str, Any] = {}

        if "name" in data:
            prepared["name"] = str(data["name"] or "").strip()
        if "content" in data:
            prepared["content"] = sanitize_content(data["content"] or "")
        if "status" in data:
            prepared["status"] = _choice(data["status"], CTAStatus, CTAStatus.ACTIVE)
        if "role" in data:
            prepared["role"] = _choice(data["role"], CTARole, CTARole.PRIMARY)
        if "taxonomy_mode" in data:
            prepared["taxonomy_mode"] = _choice(
                data["taxonomy_mode"], TaxonomyMode, TaxonomyMode.INCLUDE
            )
        if "insertion_direction" in data:
            prepared["insertion_direction"] = _choice(
                data["insertion_direction"], InsertionDirection, InsertionDirection.FORWARD
            )
        if "overflow_policy" in data:
            prepared["overflow_policy"] = _overflow_choice(data["overflow_policy"])

        if "insertion_position" in data:
            prepared["insertion_position"] = max(1, abs(int(data["insertion_position"] or 0)))
        if "fallback_id" in data:
            prepared["fallback_id"] = (
                abs(int(data["fallback_id"])) if data["fallback_id"] else None
            )

        if "content_type_targets" in data:
            prepared["content_type_targets"] = json.dumps(
                [str(t) for t in _as_list(data["content_type_targets"])]
            )
        if "taxonomy_targets" in data:
            prepared["taxonomy_targets"] = json.dumps(
                [abs(int(t)) for t in _as_list(data["taxonomy_targets"])]
            )
        if "storage_conditions" in data:
            conditions = [
                c if isinstance(c, StorageCondition) else StorageCondition(**c)
                for c in _as_list(data["storage_conditions"])
            ]
            prepared["storage_conditions"] = json.dumps(
                [c.model_dump(mode="json") for c in conditions], ensure_ascii=False
            )

        return {column: prepared[column] for column in _COLUMNS if column in prepared}

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> CTARecord:
        data = dict(row)
        for field_name in _JSON_FIELDS:
            try:
                decoded = json.loads(data.get(field_name) or "[]")
            except ValueError:
                decoded = []
            data[field_name] = decoded if isinstance(decoded, list) else []
        return CTARecord(**data)
