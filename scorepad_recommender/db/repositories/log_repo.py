"""Repository for the ``processing_logs`` table."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from scorepad_recommender.db.repositories.base import BaseRepository
from scorepad_recommender.models.log import ProcessingLog
from scorepad_recommender.taxonomy.session_taxonomy import LogStatus


class ProcessingLogRepository(BaseRepository):
    """Read/write access to per-record processing outcomes."""

    def get(self, record_id: str) -> Optional[ProcessingLog]:
        row = self.fetchone(
            "SELECT record_id, status, last_processed_at FROM processing_logs "
            "WHERE record_id = ?;",
            (record_id,),
        )
        return _row_to_log(row) if row else None

    def get_many(self, record_ids: Iterable[str]) -> dict[str, ProcessingLog]:
        """Return ``record_id → ProcessingLog`` for every known id."""
        rows = self.fetchall_in(
            "SELECT record_id, status, last_processed_at FROM processing_logs "
            "WHERE record_id IN ({placeholders});",
            list(record_ids),
        )
        return {row["record_id"]: _row_to_log(row) for row in rows}

    def upsert_many(self, logs: Iterable[ProcessingLog]) -> int:
        params = [(log.record_id, str(log.status), log.last_processed_at) for log in logs]
        if not params:
            return 0
        self.executemany(
            """
            INSERT INTO processing_logs (record_id, status, last_processed_at)
            VALUES (?, ?, ?)
            ON CONFLICT (record_id) DO UPDATE SET
                status            = excluded.status,
                last_processed_at = excluded.last_processed_at;
            """,
            params,
        )
        return len(params)

    def count(self) -> int:
        row = self.fetchone("SELECT COUNT(*) AS n FROM processing_logs;")
        return int(row["n"]) if row else 0

    def clear(self) -> int:
        return self.execute("DELETE FROM processing_logs;").rowcount


def _row_to_log(row) -> ProcessingLog:
    return ProcessingLog(
        record_id=row["record_id"],
        status=LogStatus(row["status"]),
        last_processed_at=int(row["last_processed_at"]),
    )
