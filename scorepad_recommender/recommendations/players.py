"""
Player suggestions via chained selection.

Players are picked one seat at a time. Each round re-runs the vote with the
base context voters plus every player already picked (as ``relatedPlayer``
voters), so regular groups pull their usual companions in. Already-picked
players are on the ignore-list, which lets lower-ranked candidates backfill
the freed vote slots.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Optional

from scorepad_recommender.db.repositories.entity_repo import EntityRepository
from scorepad_recommender.models.entity import Entity
from scorepad_recommender.models.recommendation import RecommendationContext, SuggestedPlayer
from scorepad_recommender.models.session import SessionPlayer
from scorepad_recommender.recommendations.context import ContextResolver
from scorepad_recommender.recommendations.voting import best_candidate, calculate_scores
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind, RelationKind

logger = logging.getLogger(__name__)

DEFAULT_PLAYER_LIMIT = 4


def predict_color(player: Entity) -> Optional[str]:
    """Return the player's most associated color, if it has learned any."""
    colors = player.meta.relation(RelationKind.COLORS)
    return colors[0].id if colors else None


class PlayerRecommender:
    """Chained player suggestion engine.

    Args:
        resolver: Context resolver bound to the active connection.
        entities: Entity repository bound to the active connection.
        candidate_limit: Valid votes per voter; the ``players`` window cap.
    """

    def __init__(
        self,
        resolver: ContextResolver,
        entities: EntityRepository,
        candidate_limit: int = 5,
    ) -> None:
        self.resolver = resolver
        self.entities = entities
        self.candidate_limit = candidate_limit

    def generate_suggestions(
        self,
        context: RecommendationContext,
        weights: Mapping[str, float],
        limit: int = DEFAULT_PLAYER_LIMIT,
    ) -> list[SuggestedPlayer]:
        """Suggest up to ``limit`` players for ``context``.

        Args:
            context: Situational context.
            weights: ``player_recommendation`` factor weights.
            limit: Number of seats to fill.

        Returns:
            Suggestions in pick order. Stops early when no candidate scores.
        """
        base_voters = self.resolver.resolve_base_context(context)
        selected: list[str] = []
        scores_by_id: dict[str, float] = {}

        for _ in range(limit):
            voters = base_voters + self.resolver.resolve_player_voters(selected)
            scores = calculate_scores(
                voters,
                weights,
                RelationKind.PLAYERS,
                ignore_ids=selected,
                candidate_limit=self.candidate_limit,
            )
            best = best_candidate(scores)
            if best is None:
                break
            selected.append(best[0])
            scores_by_id[best[0]] = best[1]

        if not selected:
            return []

        players = {p.id: p for p in self.entities.get_many(EntityKind.PLAYER, selected)}
        suggestions = [
            SuggestedPlayer(
                id=pid,
                name=players[pid].name,
                score=round(scores_by_id[pid], 4),
                suggested_color=predict_color(players[pid]),
            )
            for pid in selected
            if pid in players
        ]
        logger.debug("Suggested %d players.", len(suggestions))
        return suggestions


def apply_player_suggestions(
    players: Sequence[SessionPlayer],
    suggestions: Sequence[SuggestedPlayer],
) -> list[SessionPlayer]:
    """Fill placeholder seats from ``suggestions`` in seat order.

    Seat ``i`` takes suggestion ``i`` (name, linked entity id, and the
    suggested color when there is one). Seats past the last suggestion are
    returned unchanged.
    """
    seated: list[SessionPlayer] = []
    for index, player in enumerate(players):
        if index >= len(suggestions):
            seated.append(player)
            continue
        suggestion = suggestions[index]
        seated.append(player.model_copy(update={
            "name": suggestion.name,
            "linked_entity_id": suggestion.id,
            "color": suggestion.suggested_color or player.color,
        }))
    return seated
