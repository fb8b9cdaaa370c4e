"""
SQLite connection and transaction management.

``get_connection()`` is a context manager that:
  - Enables foreign key enforcement (OFF by default in SQLite).
  - Enables WAL journal mode so suggestion reads don't block on training.
  - Sets a busy timeout to handle lock contention gracefully.
  - Uses ``sqlite3.Row`` factory so rows behave like dicts.
  - Commits on clean exit, rolls back on exception.

``transaction()`` scopes one training operation (or one batch chunk) to a
single exclusive write transaction: ``BEGIN IMMEDIATE`` takes the write lock
up front, everything commits together or nothing does. Nested use on a
connection that is already inside a transaction becomes a SAVEPOINT.

Usage::

    from scorepad_recommender.db.connection import get_connection, transaction

    with get_connection("data/db/scorepad.db") as conn:
        with transaction(conn):
            conn.execute("INSERT INTO ...")
"""

from __future__ import annotations

import itertools
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)

_savepoint_ids = itertools.count(1)


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    The connection is committed on clean exit and rolled back on exception.
    The database file (and any parent directories) are created if they do
    not already exist.

    Args:
        db_path: Path to the SQLite database file. Use ``":memory:"`` for
            in-memory databases (useful in tests).
        wal_mode: If ``True``, enable WAL journal mode for better concurrency.
        busy_timeout_ms: Milliseconds to wait when the database is locked
            before raising ``OperationalError``.

    Yields:
        An open, configured ``sqlite3.Connection``.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened or is locked.
    """
    if db_path != ":memory:":
        db_file = Path(db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row

    try:
        # These pragmas must be set before any DML/DDL
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")

        if wal_mode:
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """Run the enclosed block as one exclusive write transaction.

    Args:
        conn: An open connection.

    Yields:
        The same connection.

    Raises:
        Exception: Whatever the block raised, after the rollback.
    """
    if conn.in_transaction:
        name = f"sp_{next(_savepoint_ids)}"
        conn.execute(f"SAVEPOINT {name};")
        try:
            yield conn
        except Exception:
            conn.execute(f"ROLLBACK TO {name};")
            conn.execute(f"RELEASE {name};")
            raise
        conn.execute(f"RELEASE {name};")
        return

    conn.execute("BEGIN IMMEDIATE;")
    try:
        yield conn
    except Exception:
        conn.rollback()
        logger.debug("Transaction rolled back.")
        raise
    conn.commit()
