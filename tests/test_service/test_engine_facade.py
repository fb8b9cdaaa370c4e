"""
Tests for the ``RecommendationEngine`` facade.

What we test
------------
1. A recorded session immediately drives player, count, location and
   color suggestions.
2. assign_colors hands out one distinct color per seat.
3. initialize_session_players fills seats and never raises.
4. Weight management: string domain ids, clamping on save, bad ids.
5. reset_learned_state wipes entities, logs and weights.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from scorepad_recommender.models.recommendation import RecommendationContext
from scorepad_recommender.models.session import SessionPlayer
from scorepad_recommender.service import RecommendationEngine
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind, WeightDomain
from scorepad_recommender.taxonomy.session_taxonomy import TrainingMode

_SATURDAY_EVENING = datetime(2026, 3, 7, 20, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(in_memory_db, app_config, id_factory, fixed_clock) -> RecommendationEngine:
    return RecommendationEngine(in_memory_db, app_config, id_factory=id_factory, clock=fixed_clock)


@pytest.fixture
def trained(engine, record_factory) -> RecommendationEngine:
    record = record_factory(colors={"p-alice": "#ff0000", "p-bob": "#00ff00"})
    assert engine.record_session_completion(record) == TrainingMode.FULL
    return engine


def _context(**kwargs) -> RecommendationContext:
    return RecommendationContext(game_name="Azul", timestamp=_SATURDAY_EVENING, **kwargs)


class TestSuggestions:
    def test_players(self, trained):
        suggestions = trained.suggest_players(_context())
        assert [(s.id, s.name) for s in suggestions] == [("p-alice", "Alice"), ("p-bob", "Bob")]
        assert suggestions[0].suggested_color == "#ff0000"

    def test_player_limit(self, trained):
        assert len(trained.suggest_players(_context(), limit=1)) == 1

    def test_counts(self, trained):
        assert trained.suggest_counts(_context()) == [2]

    def test_locations(self, trained):
        assert trained.suggest_locations(_context(known_player_ids=["p-bob"])) == ["Home"]

    def test_colors(self, trained):
        assert trained.suggest_colors(_context(), target_entity_id="p-bob")[:1] == ["#00ff00"]

    def test_untrained_store(self, engine):
        assert engine.suggest_players(_context()) == []
        assert engine.suggest_counts(_context()) == []
        assert engine.suggest_locations(_context()) == []


class TestAssignColors:
    def test_distinct_colors_per_seat(self, trained):
        colors = trained.assign_colors(_context(), ["p-alice", "p-bob", None])
        assert colors[:2] == ["#ff0000", "#00ff00"]
        assert len(set(colors)) == 3

    def test_template_colors_used_for_fallback(self, engine):
        colors = engine.assign_colors(_context(), [None, None], template_colors=["gold", "silver"])
        assert colors == ["gold", "silver"]


class TestInitializeSessionPlayers:
    def _seats(self) -> list[SessionPlayer]:
        return [SessionPlayer(id=f"slot_{n}", name=f"Player {n}") for n in (1, 2, 3)]

    def test_fills_seats(self, trained):
        seated = trained.initialize_session_players(_context(), self._seats())
        assert [(p.name, p.linked_entity_id) for p in seated] == [
            ("Alice", "p-alice"),
            ("Bob", "p-bob"),
            ("Player 3", None),
        ]

    def test_failure_returns_seats_unchanged(self, trained, monkeypatch, caplog):
        def broken(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(trained.players, "generate_suggestions", broken)
        seats = self._seats()
        assert trained.initialize_session_players(_context(), seats) == seats
        assert "Player suggestion failed" in caplog.text


class TestWeights:
    def test_defaults(self, engine):
        assert engine.get_weights("count_recommendation") == engine.get_weights(WeightDomain.COUNT)
        assert set(engine.get_weights(WeightDomain.COLOR)) == {"templateSetting", "game", "player"}

    def test_save_clamps(self, engine):
        engine.save_weights(WeightDomain.PLAYER, {"game": 12.0, "weekday": 0.01, "location": 2.5})
        weights = engine.get_weights(WeightDomain.PLAYER)
        assert weights["game"] == 5.0
        assert weights["weekday"] == 0.2
        assert weights["location"] == 2.5
        assert weights["relatedPlayer"] == 1.0

    def test_unknown_domain(self, engine):
        with pytest.raises(ValueError):
            engine.get_weights("nope")


class TestReset:
    def test_reset_clears_everything(self, trained, record_factory):
        trained.save_weights(WeightDomain.COUNT, {"game": 3.0})
        trained.reset_learned_state()

        assert trained.entities.count(EntityKind.PLAYER) == 0
        assert trained.logs.count() == 0
        assert trained.weights.get_stored(WeightDomain.COUNT) is None
        assert trained.suggest_players(_context()) == []

        # The same record trains again from scratch
        assert trained.record_session_completion(record_factory()) == TrainingMode.FULL

    def test_reprocess_through_engine(self, engine, record_factory):
        summary = engine.reprocess_all_history([record_factory("a"), record_factory("b")])
        assert summary.processed == 2
        assert engine.suggest_counts(_context()) == [2]
