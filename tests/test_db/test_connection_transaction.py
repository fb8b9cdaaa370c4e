"""
Tests for the ``transaction()`` scope.

What we test
------------
1. A clean exit commits.
2. An exception rolls everything back and propagates.
3. A nested scope becomes a savepoint: its failure undoes only its own
   writes and the outer transaction can still commit.
"""

from __future__ import annotations

import pytest

from scorepad_recommender.db.connection import transaction


def _insert_log(conn, record_id: str) -> None:
    conn.execute(
        "INSERT INTO processing_logs (record_id, status, last_processed_at) "
        "VALUES (?, 'processed', 0);",
        (record_id,),
    )


def _log_ids(conn) -> list[str]:
    rows = conn.execute("SELECT record_id FROM processing_logs ORDER BY record_id;").fetchall()
    return [r["record_id"] for r in rows]


class TestTransaction:
    def test_commit_on_success(self, in_memory_db):
        with transaction(in_memory_db):
            _insert_log(in_memory_db, "a")
        assert not in_memory_db.in_transaction
        assert _log_ids(in_memory_db) == ["a"]

    def test_rollback_on_error(self, in_memory_db):
        with pytest.raises(RuntimeError, match="boom"):
            with transaction(in_memory_db):
                _insert_log(in_memory_db, "a")
                raise RuntimeError("boom")
        assert _log_ids(in_memory_db) == []

    def test_nested_failure_only_undoes_inner(self, in_memory_db):
        with transaction(in_memory_db):
            _insert_log(in_memory_db, "outer")
            with pytest.raises(ValueError):
                with transaction(in_memory_db):
                    _insert_log(in_memory_db, "inner")
                    raise ValueError("inner failed")
        assert _log_ids(in_memory_db) == ["outer"]

    def test_nested_success_commits_with_outer(self, in_memory_db):
        with transaction(in_memory_db):
            _insert_log(in_memory_db, "outer")
            with transaction(in_memory_db):
                _insert_log(in_memory_db, "inner")
        assert _log_ids(in_memory_db) == ["inner", "outer"]
