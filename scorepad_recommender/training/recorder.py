"""
Single-record training path.

``record_session_completion`` is called once per finalized session. The
processing-log check, entity resolution, training and write-back all run in
one exclusive transaction: either every change lands or none does.
Recording the same record again is a no-op (``TrainingMode.SKIP``) unless it
was first recorded without a location and now has one.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime

from scorepad_recommender.config import AppConfig
from scorepad_recommender.db.connection import transaction
from scorepad_recommender.models.session import SessionRecord
from scorepad_recommender.taxonomy.session_taxonomy import TrainingMode
from scorepad_recommender.training.identity import IdFactory, new_entity_id
from scorepad_recommender.training.unit_of_work import TrainingUnitOfWork
from scorepad_recommender.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def record_session_completion(
    conn: sqlite3.Connection,
    config: AppConfig,
    record: SessionRecord,
    id_factory: IdFactory = new_entity_id,
    clock: Callable[[], datetime] = utcnow,
) -> TrainingMode:
    """Train the model on one finalized session.

    Args:
        conn: Open connection (not inside a caller transaction).
        config: Application configuration.
        record: The finalized session.
        id_factory: Id source for newly created entities.
        clock: Source of "now" for the processing log.

    Returns:
        The mode that was applied.

    Raises:
        sqlite3.Error: On storage failure, after rollback; nothing is written.
    """
    try:
        with transaction(conn):
            uow = TrainingUnitOfWork(conn, config, id_factory=id_factory, clock=clock)
            uow.load([record])
            mode = uow.train(record, include_session_context=True)
            if mode == TrainingMode.SKIP:
                logger.info("Session %s already processed; skipping.", record.id)
                return mode
            stats = uow.flush()
    except Exception:
        logger.exception("Training failed for session %s; changes rolled back.", record.id)
        raise

    logger.info(
        "Session %s trained | mode=%s | entities=%d | weight_domains=%d",
        record.id, mode, stats.entities, stats.weight_domains,
    )
    return mode
