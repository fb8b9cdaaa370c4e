"""
History replay in chunks.

``reprocess_all_history`` orders records by end time and trains them in
chunks (``training.batch_chunk_size``, default 200). Each chunk is one
transaction running the full harvest → load → train → flush cycle, so a
failure loses at most the chunk in flight and earlier chunks stay
committed. Progress (0-100) is reported after every committed chunk.

Between chunks the loop yields the thread and checks the cancel event;
cancellation never interrupts a chunk halfway. The session-context
pseudo-entity is not trained here: short-term memory of sessions from
months ago is meaningless.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from scorepad_recommender.config import AppConfig
from scorepad_recommender.db.connection import transaction
from scorepad_recommender.models.session import SessionRecord
from scorepad_recommender.taxonomy.session_taxonomy import TrainingMode
from scorepad_recommender.training.identity import IdFactory, new_entity_id
from scorepad_recommender.training.unit_of_work import TrainingUnitOfWork
from scorepad_recommender.utils.time_utils import to_epoch_ms, utcnow

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class BatchSummary:
    """Outcome of a history replay.

    Attributes:
        total: Records submitted.
        processed: Records trained (full or location-only).
        skipped: Records skipped by the processing-log check.
        chunks_committed: Transactions committed.
        cancelled: Whether the replay stopped early on request.
    """

    total: int
    processed: int
    skipped: int
    chunks_committed: int
    cancelled: bool


def progress_percent(done: int, total: int) -> int:
    """Return ``min(100, round(done / total * 100))``; an empty run is 100."""
    if total <= 0:
        return 100
    return min(100, int(done / total * 100 + 0.5))


def reprocess_all_history(
    conn: sqlite3.Connection,
    config: AppConfig,
    records: Iterable[SessionRecord],
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    chunk_size: Optional[int] = None,
    id_factory: IdFactory = new_entity_id,
    clock: Callable[[], datetime] = utcnow,
) -> BatchSummary:
    """Replay finalized sessions in end-time order.

    Args:
        conn: Open connection (not inside a caller transaction).
        config: Application configuration.
        records: Sessions to replay; already-processed ones are skipped.
        on_progress: Called with 0-100 after each committed chunk, and once
            with 100 when there is nothing to replay.
        cancel_event: When set, the replay stops at the next chunk boundary.
        chunk_size: Override of ``config.training.batch_chunk_size``.
        id_factory: Id source for newly created entities.
        clock: Source of "now" for the processing log.

    Returns:
        A ``BatchSummary``.

    Raises:
        sqlite3.Error: On storage failure; the failing chunk is rolled back,
            earlier chunks remain committed.
    """
    ordered = sorted(records, key=lambda r: to_epoch_ms(r.finished_at))
    size = chunk_size or config.training.batch_chunk_size
    total = len(ordered)

    processed = skipped = chunks = 0
    cancelled = False
    logger.info("Reprocessing %d history records in chunks of %d.", total, size)
    if total == 0 and on_progress is not None:
        on_progress(progress_percent(0, total))

    for start in range(0, total, size):
        if cancel_event is not None and cancel_event.is_set():
            cancelled = True
            logger.info("History replay cancelled after %d/%d records.", start, total)
            break

        chunk = ordered[start:start + size]
        try:
            with transaction(conn):
                uow = TrainingUnitOfWork(conn, config, id_factory=id_factory, clock=clock)
                uow.load(chunk)
                for record in chunk:
                    if uow.train(record, include_session_context=False) == TrainingMode.SKIP:
                        skipped += 1
                    else:
                        processed += 1
                uow.flush()
        except Exception:
            logger.exception("History chunk starting at %d failed; chunk rolled back.", start)
            raise

        chunks += 1
        done = start + len(chunk)
        logger.info("History replay progress: %d/%d records.", done, total)
        if on_progress is not None:
            on_progress(progress_percent(done, total))
        # Let other threads (UI, cancel requests) run between chunks
        time.sleep(0)

    return BatchSummary(
        total=total,
        processed=processed,
        skipped=skipped,
        chunks_committed=chunks,
        cancelled=cancelled,
    )
