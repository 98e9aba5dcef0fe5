"""SQLite database utilities for the CTA auto-insertion engine.

Provides connection management and table initialization.
The CTA repository uses this for record persistence.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from .config import settings

CTA_TABLE = "cta_auto_insertions"

# SQL for creating the record table
_CREATE_TABLES_SQL = f"""
CREATE TABLE IF NOT EXISTS {CTA_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'active',
    role TEXT NOT NULL DEFAULT 'primary',
    content_type_targets TEXT NOT NULL DEFAULT '[]',
    taxonomy_mode TEXT NOT NULL DEFAULT 'include',
    taxonomy_targets TEXT NOT NULL DEFAULT '[]',
    storage_conditions TEXT NOT NULL DEFAULT '[]',
    insertion_direction TEXT NOT NULL DEFAULT 'forward',
    insertion_position INTEGER NOT NULL DEFAULT 3,
    overflow_policy TEXT NOT NULL DEFAULT 'clamp-to-end',
    fallback_id INTEGER DEFAULT NULL,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_cta_status ON {CTA_TABLE}(status);
CREATE INDEX IF NOT EXISTS idx_cta_fallback ON {CTA_TABLE}(fallback_id);
"""


def get_connection(db_path: str | None = None) -> sqlite3.Connection:
    """Get a SQLite connection with row factory enabled."""
    path = db_path or settings.database.db_path
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db(db_path: str | None = None) -> None:
    """Create all tables if they don't exist."""
    conn = get_connection(db_path)
    try:
        conn.executescript(_CREATE_TABLES_SQL)
        conn.commit()
    finally:
        conn.close()
