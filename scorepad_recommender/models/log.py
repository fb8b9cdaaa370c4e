"""
Processing log — idempotency record for finalized sessions.

One row per trained record. The training pipeline consults it before doing
anything: ``processed`` records are skipped, ``missing_location`` records
are revisited only when a location shows up.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from scorepad_recommender.taxonomy.session_taxonomy import LogStatus, TrainingMode


class ProcessingLog(BaseModel):
    """Processing outcome of one session record.

    Attributes:
        record_id: The ``SessionRecord.id`` this entry belongs to.
        status: Outcome of the latest training pass.
        last_processed_at: Epoch milliseconds of that pass.
    """

    model_config = ConfigDict(frozen=True)

    record_id: str
    status: LogStatus
    last_processed_at: int


def select_training_mode(log: ProcessingLog | None, has_location: bool) -> TrainingMode:
    """Decide what a training pass should do with a record.

    Args:
        log: Existing log entry for the record, or ``None``.
        has_location: Whether the record (as submitted now) names a location.

    Returns:
        ``FULL`` for unseen records, ``LOCATION_ONLY`` for records first
        trained without a location that now have one, else ``SKIP``.
    """
    if log is None:
        return TrainingMode.FULL
    if log.status == LogStatus.MISSING_LOCATION and has_location:
        return TrainingMode.LOCATION_ONLY
    return TrainingMode.SKIP


def status_for(has_location: bool) -> LogStatus:
    """Return the log status a freshly trained record receives."""
    return LogStatus.PROCESSED if has_location else LogStatus.MISSING_LOCATION
