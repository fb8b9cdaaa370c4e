"""
Shared pytest fixtures for the Scorepad Recommender test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``app_config``: Default ``AppConfig`` (no TOML, no environment).
  - ``id_factory``: Deterministic entity id source (``e1``, ``e2``, ...).
  - ``fixed_clock``: Clock returning a constant instant.
  - Sample session record factories shared by training and service tests.
"""

from __future__ import annotations

import itertools
import sqlite3
from datetime import datetime, timezone
from typing import Callable, Generator

import pytest

from scorepad_recommender.config import AppConfig
from scorepad_recommender.db.schema import apply_schema
from scorepad_recommender.models.session import SessionPlayer, SessionRecord


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Configuration & determinism ───────────────────────────────────────────────

@pytest.fixture
def app_config() -> AppConfig:
    """Default configuration; time zone UTC, 20-color palette."""
    return AppConfig()


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Deterministic id factory: ``e1``, ``e2``, ..."""
    counter = itertools.count(1)
    return lambda: f"e{next(counter)}"


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock frozen at 2026-03-01T12:00:00Z."""
    instant = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
    return lambda: instant


# ── Sample records ────────────────────────────────────────────────────────────

def make_record(
    record_id: str = "rec-1",
    game_name: str = "Azul",
    location_name: str | None = "Home",
    players: list[tuple[str, str]] | None = None,
    end_time: datetime | None = None,
    external_game_id: str | None = None,
    colors: dict[str, str] | None = None,
) -> SessionRecord:
    """Build a ``SessionRecord``; ``players`` are ``(seat_id, name)`` pairs.

    The default end time is Saturday 2026-02-28 20:30 UTC (weekday_6, timeslot_6).
    """
    seats = players if players is not None else [("p-alice", "Alice"), ("p-bob", "Bob")]
    colors = colors or {}
    end = end_time or datetime(2026, 2, 28, 20, 30, tzinfo=timezone.utc)
    return SessionRecord(
        id=record_id,
        game_name=game_name,
        external_game_id=external_game_id,
        start_time=end,
        end_time=end,
        location_name=location_name,
        players=[
            SessionPlayer(id=seat_id, name=name, color=colors.get(seat_id, ""))
            for seat_id, name in seats
        ],
    )


@pytest.fixture
def sample_record() -> SessionRecord:
    """A two-player Azul session at Home."""
    return make_record()


@pytest.fixture
def record_factory() -> Callable[..., SessionRecord]:
    """The ``make_record`` builder, for tests that need several records."""
    return make_record
