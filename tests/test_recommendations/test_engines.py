"""
Tests for the player, count, location and color engines.

What we test
------------
PlayerRecommender
  1. Chained selection: picked players vote for their usual companions.
  2. Selection stops when nothing scores; suggestions carry names/colors.
  3. apply_player_suggestions fills seats in order.

CountRecommender
  4. Counts are decoded from bucket ids and capped at two.

LocationRecommender
  5. Known players vote alongside the context; ids map back to names.

ColorRecommender
  6. The template voter dominates; exclusions backfill; transparent never
     appears.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from scorepad_recommender.db.repositories.entity_repo import EntityRepository
from scorepad_recommender.models.entity import Entity, EntityMeta
from scorepad_recommender.models.recommendation import RecommendationContext, SuggestedPlayer
from scorepad_recommender.models.session import SessionPlayer
from scorepad_recommender.recommendations.colors import ColorRecommender, template_voter
from scorepad_recommender.recommendations.context import ContextResolver
from scorepad_recommender.recommendations.counts import CountRecommender, decode_count
from scorepad_recommender.recommendations.locations import LocationRecommender
from scorepad_recommender.recommendations.players import (
    PlayerRecommender,
    apply_player_suggestions,
    predict_color,
)
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind, Factor

_WHEN = datetime(2026, 2, 28, 20, 30, tzinfo=timezone.utc)


def _entity(kind: EntityKind, entity_id: str, name: str, **relations: list[str]) -> Entity:
    return Entity(
        kind=kind,
        id=entity_id,
        name=name,
        meta=EntityMeta(relations=relations),
    )


@pytest.fixture
def repo(in_memory_db) -> EntityRepository:
    repo = EntityRepository(in_memory_db)
    repo.upsert_many([
        _entity(
            EntityKind.GAME, "g-azul", "Azul",
            players=["p-alice", "p-bob", "p-carol"],
            playerCounts=["count_4", "count_2", "count_3"],
            locations=["l-home", "l-cafe"],
            colors=["#0000ff"],
        ),
        _entity(EntityKind.WEEKDAY, "weekday_6", "Saturday", playerCounts=["count_2"]),
        _entity(EntityKind.PLAYER, "p-alice", "Alice", players=["p-carol"], colors=["#ff0000"]),
        _entity(
            EntityKind.PLAYER, "p-bob", "Bob",
            locations=["l-cafe"], colors=["transparent", "#00ff00"],
        ),
        _entity(EntityKind.PLAYER, "p-carol", "Carol"),
        _entity(EntityKind.LOCATION, "l-home", "Home"),
        _entity(EntityKind.LOCATION, "l-cafe", "Cafe"),
    ])
    return repo


@pytest.fixture
def resolver(repo) -> ContextResolver:
    return ContextResolver(repo, "UTC")


def _context(**kwargs) -> RecommendationContext:
    return RecommendationContext(game_name="Azul", timestamp=_WHEN, **kwargs)


# ── Players ───────────────────────────────────────────────────────────────────

class TestPlayerRecommender:
    def test_chained_selection(self, repo, resolver):
        suggestions = PlayerRecommender(resolver, repo).generate_suggestions(_context(), {}, limit=4)
        # Round 2: game gives Bob 5 / Carol 4, Alice gives Carol 5 → Carol 9
        assert [s.id for s in suggestions] == ["p-alice", "p-carol", "p-bob"]
        assert suggestions[0].score == 5.0
        assert suggestions[1].score == 9.0

    def test_names_and_colors(self, repo, resolver):
        suggestions = PlayerRecommender(resolver, repo).generate_suggestions(_context(), {}, limit=1)
        assert suggestions == [
            SuggestedPlayer(id="p-alice", name="Alice", score=5.0, suggested_color="#ff0000"),
        ]

    def test_weights_change_the_winner(self, repo, resolver):
        suggestions = PlayerRecommender(resolver, repo).generate_suggestions(
            _context(), {"game": 1.0, "relatedPlayer": 0.2}, limit=2,
        )
        # Carol: 4 + 5 * 0.2 = 5 ties Bob's 5; Bob was seen first
        assert [s.id for s in suggestions] == ["p-alice", "p-bob"]

    def test_no_context_no_suggestions(self, repo):
        resolver = ContextResolver(repo, "UTC")
        context = RecommendationContext(game_name="Unknown", timestamp=_WHEN)
        assert PlayerRecommender(resolver, repo).generate_suggestions(context, {}) == []

    def test_predict_color(self, repo):
        assert predict_color(repo.get(EntityKind.PLAYER, "p-alice")) == "#ff0000"
        assert predict_color(repo.get(EntityKind.PLAYER, "p-carol")) is None


class TestApplyPlayerSuggestions:
    def test_fills_seats_in_order(self):
        seats = [
            SessionPlayer(id="slot_1", name="Player 1", color="#111111"),
            SessionPlayer(id="slot_2", name="Player 2", color="#222222"),
            SessionPlayer(id="slot_3", name="Player 3"),
        ]
        suggestions = [
            SuggestedPlayer(id="p-alice", name="Alice", score=5.0, suggested_color="#ff0000"),
            SuggestedPlayer(id="p-bob", name="Bob", score=4.0),
        ]
        seated = apply_player_suggestions(seats, suggestions)

        assert [(p.id, p.name, p.linked_entity_id, p.color) for p in seated] == [
            ("slot_1", "Alice", "p-alice", "#ff0000"),
            ("slot_2", "Bob", "p-bob", "#222222"),
            ("slot_3", "Player 3", None, ""),
        ]


# ── Counts ────────────────────────────────────────────────────────────────────

class TestCountRecommender:
    def test_ranked_counts(self, resolver):
        # game: count_4 → 5, count_2 → 4 (limit 2); Saturday: count_2 → 5
        assert CountRecommender(resolver).generate_suggestions(_context(), {}) == [2, 4]

    @pytest.mark.parametrize("entity_id, expected", [
        ("count_4", 4),
        ("count_12", 12),
        ("count_x", None),
        ("weekday_1", None),
    ])
    def test_decode_count(self, entity_id, expected):
        assert decode_count(entity_id) == expected


# ── Locations ─────────────────────────────────────────────────────────────────

class TestLocationRecommender:
    def test_known_players_vote(self, repo, resolver):
        context = _context(known_player_ids=["p-bob"])
        assert LocationRecommender(resolver, repo).generate_suggestions(context, {}) == ["Cafe", "Home"]

    def test_context_only(self, repo, resolver):
        assert LocationRecommender(resolver, repo).generate_suggestions(_context(), {}) == ["Home", "Cafe"]


# ── Colors ────────────────────────────────────────────────────────────────────

class TestColorRecommender:
    def test_template_voter(self):
        voter = template_voter(["#a", "", "#b", "#a"])
        assert voter.factor == Factor.TEMPLATE_SETTING
        assert [i.id for i in voter.entity.meta.relation("colors")] == ["#a", "#b"]
        assert voter.entity.meta.confidence_for("colors") == 5.0
        assert template_voter([]) is None

    def test_template_dominates(self, repo, resolver):
        colors = ColorRecommender(resolver, repo).generate_suggestions(
            _context(), {}, color_order_hint=["#ff00ff", "#0000ff"], target_entity_id="p-alice",
        )
        # template: magenta 25, blue 20; game: blue +5; player: red 5
        assert colors == ["#ff00ff", "#0000ff", "#ff0000"]

    def test_excluded_colors_backfill(self, repo, resolver):
        colors = ColorRecommender(resolver, repo).generate_suggestions(
            _context(), {}, color_order_hint=["#ff00ff", "#0000ff"], excluded_colors=["#ff00ff"],
        )
        assert colors == ["#0000ff"]

    def test_transparent_never_suggested(self, repo, resolver):
        colors = ColorRecommender(resolver, repo).generate_suggestions(
            _context(), {}, target_entity_id="p-bob",
        )
        assert "transparent" not in colors
        assert colors == ["#0000ff", "#00ff00"]
