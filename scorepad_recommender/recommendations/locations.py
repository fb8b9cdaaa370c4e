"""
Location suggestions.

Votes over the ``locations`` lists of the base context voters plus the
players already known to be attending, then maps the winning ids back to
display names.
"""

from __future__ import annotations

from collections.abc import Mapping

from scorepad_recommender.db.repositories.entity_repo import EntityRepository
from scorepad_recommender.models.recommendation import RecommendationContext
from scorepad_recommender.recommendations.context import ContextResolver
from scorepad_recommender.recommendations.voting import calculate_scores, rank_candidates
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind, RelationKind


class LocationRecommender:
    """Suggest likely locations by name.

    Args:
        resolver: Context resolver bound to the active connection.
        entities: Entity repository used to resolve ids to names.
        limit: Maximum names returned; also the per-voter vote limit.
    """

    def __init__(
        self, resolver: ContextResolver, entities: EntityRepository, limit: int = 5
    ) -> None:
        self.resolver = resolver
        self.entities = entities
        self.limit = limit

    def generate_suggestions(
        self, context: RecommendationContext, weights: Mapping[str, float]
    ) -> list[str]:
        voters = self.resolver.resolve_base_context(context)
        voters += self.resolver.resolve_player_voters(context.known_player_ids)

        scores = calculate_scores(
            voters, weights, RelationKind.LOCATIONS, candidate_limit=self.limit
        )
        ranked = rank_candidates(scores)
        names = {
            loc.id: loc.name for loc in self.entities.get_many(EntityKind.LOCATION, ranked)
        }
        return [names[lid] for lid in ranked if lid in names][:self.limit]
