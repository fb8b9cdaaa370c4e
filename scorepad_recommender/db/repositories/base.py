"""
Base repository providing shared SQLite execution helpers.

All repositories inherit from ``BaseRepository`` and receive a
``sqlite3.Connection`` at construction time. The connection is assumed
to be opened and managed by the caller (typically via ``get_connection()``),
and transactions are scoped by the caller via ``transaction()``.

Design:
  - No ORM — all SQL is explicit and lives in repository methods.
  - Repositories speak Pydantic models, not raw dicts.
  - JSON columns are encoded/decoded here, never in callers.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Conservative bound on host parameters per statement (older SQLite builds: 999)
MAX_IN_PARAMS = 500


class BaseRepository:
    """Shared SQL execution helpers for all repository classes.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Cursor:
        """Execute a single SQL statement.

        Args:
            sql: SQL string with ``?`` or ``:name`` placeholders.
            params: Positional tuple or named dict of parameters.

        Returns:
            The resulting ``sqlite3.Cursor``.
        """
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params)

    def executemany(
        self,
        sql: str,
        params_list: list[tuple[Any, ...] | dict[str, Any]],
    ) -> sqlite3.Cursor:
        """Execute a SQL statement for each element in ``params_list``."""
        logger.debug("SQL (many): %s | count: %d", sql.strip(), len(params_list))
        return self.conn.executemany(sql, params_list)

    def fetchone(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> Optional[sqlite3.Row]:
        """Execute a query and return the first row, or ``None``."""
        return self.execute(sql, params).fetchone()

    def fetchall(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[sqlite3.Row]:
        """Execute a query and return all rows."""
        return self.execute(sql, params).fetchall()

    def fetchall_in(
        self,
        sql_template: str,
        values: Sequence[Any],
        prefix_params: tuple[Any, ...] = (),
    ) -> list[sqlite3.Row]:
        """Run an ``IN (...)`` query over ``values`` in bounded chunks.

        Args:
            sql_template: SQL containing one ``{placeholders}`` marker.
            values: Values bound into the ``IN`` list.
            prefix_params: Parameters bound before the ``IN`` list.

        Returns:
            Rows from all chunks, concatenated.
        """
        rows: list[sqlite3.Row] = []
        for chunk in _chunks(list(dict.fromkeys(values)), MAX_IN_PARAMS):
            placeholders = ", ".join("?" for _ in chunk)
            sql = sql_template.format(placeholders=placeholders)
            rows.extend(self.fetchall(sql, prefix_params + tuple(chunk)))
        return rows


def _chunks(values: list[Any], size: int) -> Iterator[list[Any]]:
    for start in range(0, len(values), size):
        yield values[start:start + size]


def dump_json(value: Any) -> str:
    """Compact JSON encoding used for every JSON column."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def load_json(text: Optional[str], default: Any) -> Any:
    """Decode a JSON column, returning ``default`` for NULL or corrupt values."""
    if not text:
        return default
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Discarding undecodable JSON column value: %.80s", text)
        return default
