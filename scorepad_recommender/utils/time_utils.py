"""
Time helpers for session timestamps and calendar buckets.

Key concepts:
  - Epoch milliseconds: the storage representation of ``last_used``.
  - Weekday buckets: ``weekday_0`` (Sunday) .. ``weekday_6`` (Saturday).
  - Time-slot buckets: eight 3-hour slots, ``timeslot_0`` = 00-03.

Naive datetimes are read as UTC everywhere, both when stored as epoch
milliseconds and when bucketed. Before bucketing, every datetime is converted
into the configured local zone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

HOURS_PER_SLOT = 3
TIME_SLOT_COUNT = 24 // HOURS_PER_SLOT


def utcnow() -> datetime:
    """Return the current UTC time as an aware datetime."""
    return datetime.now(tz=timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds.

    Naive datetimes are interpreted as UTC, the same reading ``to_local`` uses.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def to_local(dt: datetime, time_zone: Optional[str] = None) -> datetime:
    """Return ``dt`` as wall-clock time in ``time_zone``.

    Args:
        dt: Any datetime. Naive input is interpreted as UTC.
        time_zone: IANA zone name. ``None`` returns ``dt`` unchanged.

    Returns:
        The localized datetime.
    """
    if time_zone is None:
        return dt
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(ZoneInfo(time_zone))


def weekday_index(dt: datetime, time_zone: Optional[str] = None) -> int:
    """Return the day of week with Sunday = 0 and Saturday = 6."""
    return (to_local(dt, time_zone).weekday() + 1) % 7


def time_slot_index(dt: datetime, time_zone: Optional[str] = None) -> int:
    """Return the 3-hour slot (0..7) containing ``dt``."""
    return to_local(dt, time_zone).hour // HOURS_PER_SLOT


def time_slot_label(slot: int) -> str:
    """Return the display label of a slot, e.g. ``2`` → ``"06-09"``."""
    start = slot * HOURS_PER_SLOT
    return f"{start:02d}-{start + HOURS_PER_SLOT:02d}"
