"""
Tests for calendar bucketing helpers.

What we test
------------
1. weekday_index: Sunday = 0 .. Saturday = 6.
2. time_slot_index: eight 3-hour slots; labels are zero-padded.
3. Datetimes are converted to the configured zone; naive ones are read as
   UTC, the same reading to_epoch_ms uses.
4. to_epoch_ms treats naive datetimes as UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from scorepad_recommender.utils.time_utils import (
    TIME_SLOT_COUNT,
    time_slot_index,
    time_slot_label,
    to_epoch_ms,
    weekday_index,
)


class TestWeekday:
    @pytest.mark.parametrize("day, expected", [
        (1, 0),   # 2026-03-01 Sunday
        (2, 1),
        (6, 5),
        (7, 6),   # Saturday
    ])
    def test_sunday_is_zero(self, day, expected):
        assert weekday_index(datetime(2026, 3, day, 12, 0)) == expected

    def test_zone_conversion_crosses_midnight(self):
        saturday_late = datetime(2026, 2, 28, 23, 30, tzinfo=timezone.utc)
        assert weekday_index(saturday_late, "UTC") == 6
        assert weekday_index(saturday_late, "Asia/Tokyo") == 0

    def test_naive_is_read_as_utc(self):
        # 23:30 UTC Saturday is 08:30 Sunday in Tokyo
        naive = datetime(2026, 2, 28, 23, 30)
        assert weekday_index(naive, "Asia/Tokyo") == 0
        assert weekday_index(naive, "Asia/Tokyo") == weekday_index(
            naive.replace(tzinfo=timezone.utc), "Asia/Tokyo"
        )


class TestTimeSlots:
    @pytest.mark.parametrize("hour, expected", [(0, 0), (2, 0), (3, 1), (14, 4), (20, 6), (23, 7)])
    def test_slots(self, hour, expected):
        assert time_slot_index(datetime(2026, 3, 1, hour, 59)) == expected

    def test_slot_count(self):
        assert TIME_SLOT_COUNT == 8

    def test_labels(self):
        assert time_slot_label(0) == "00-03"
        assert time_slot_label(2) == "06-09"
        assert time_slot_label(7) == "21-24"

    def test_zone(self):
        dt = datetime(2026, 3, 1, 1, 0, tzinfo=timezone.utc)
        assert time_slot_index(dt, "America/New_York") == 6  # 20:00 the day before


class TestEpochMs:
    def test_naive_is_utc(self):
        assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1)) == 1000

    def test_aware(self):
        assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)) == 1500
