"""
SQLite schema DDL — all CREATE TABLE and CREATE INDEX statements.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is **idempotent**:
safe to call on an already-initialized database (e.g. after restart or in tests).

Tables:
  1. entities          — every learnable candidate, partitioned by ``kind``.
                         Learned ranked lists and confidences live in the
                         JSON ``meta`` column.
  2. processing_logs   — one row per trained session record.
  3. weight_configs    — one row per recommendation weight domain.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_ENTITIES = """
CREATE TABLE IF NOT EXISTS entities (
    kind            TEXT    NOT NULL,
    entity_id       TEXT    NOT NULL,
    name            TEXT    NOT NULL,
    name_key        TEXT    NOT NULL,
    last_used_ms    INTEGER NOT NULL DEFAULT 0,
    usage_count     INTEGER NOT NULL DEFAULT 0,
    external_id     TEXT,
    meta            TEXT    NOT NULL DEFAULT '{}',
    PRIMARY KEY (kind, entity_id)
);
CREATE INDEX IF NOT EXISTS idx_entities_name_key
    ON entities (kind, name_key);
CREATE INDEX IF NOT EXISTS idx_entities_external_id
    ON entities (kind, external_id);
"""

_DDL_PROCESSING_LOGS = """
CREATE TABLE IF NOT EXISTS processing_logs (
    record_id           TEXT    PRIMARY KEY,
    status              TEXT    NOT NULL CHECK (status IN ('processed', 'missing_location')),
    last_processed_at   INTEGER NOT NULL
);
"""

_DDL_WEIGHT_CONFIGS = """
CREATE TABLE IF NOT EXISTS weight_configs (
    domain_id       TEXT    PRIMARY KEY,
    weights         TEXT    NOT NULL,
    updated_at      INTEGER NOT NULL
);
"""

_ALL_DDL: list[str] = [
    _DDL_ENTITIES,
    _DDL_PROCESSING_LOGS,
    _DDL_WEIGHT_CONFIGS,
]

ALL_TABLE_NAMES: list[str] = [
    "entities",
    "processing_logs",
    "weight_configs",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent — safe to call on an already-initialized database.

    Args:
        conn: An open ``sqlite3.Connection``.
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return list of table names present in the database (sorted)."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row[0] for row in rows]
