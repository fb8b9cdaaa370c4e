"""Player-count suggestions: one vote over the ``playerCounts`` lists."""

from __future__ import annotations

from collections.abc import Mapping

from scorepad_recommender.models.recommendation import RecommendationContext
from scorepad_recommender.recommendations.context import ContextResolver
from scorepad_recommender.recommendations.voting import calculate_scores, rank_candidates
from scorepad_recommender.taxonomy.relation_taxonomy import COUNT_PREFIX, RelationKind


def decode_count(entity_id: str) -> int | None:
    """``"count_4"`` → ``4``; anything else → ``None``."""
    if not entity_id.startswith(COUNT_PREFIX):
        return None
    try:
        return int(entity_id[len(COUNT_PREFIX):])
    except ValueError:
        return None


class CountRecommender:
    """Suggest the most likely player counts.

    Args:
        resolver: Context resolver bound to the active connection.
        limit: Number of counts returned; also the per-voter vote limit.
    """

    def __init__(self, resolver: ContextResolver, limit: int = 2) -> None:
        self.resolver = resolver
        self.limit = limit

    def generate_suggestions(
        self, context: RecommendationContext, weights: Mapping[str, float]
    ) -> list[int]:
        voters = self.resolver.resolve_base_context(context)
        scores = calculate_scores(
            voters, weights, RelationKind.PLAYER_COUNTS, candidate_limit=self.limit
        )
        counts = [
            n for n in (decode_count(cid) for cid in rank_candidates(scores))
            if n is not None
        ]
        return counts[:self.limit]
