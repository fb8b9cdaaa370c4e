"""
Color suggestions for one player.

Three voters rank the palette:

  templateSetting → a synthetic voter whose ``colors`` list is the caller's
                    preferred color order (e.g. a score-sheet template's
                    supported colors). Its confidence is pinned at 5.0, so the
                    template order dominates; counts are irrelevant.
  game            → colors people have used for the current game.
  player          → colors the target player keeps picking.

The candidate limit covers the whole palette, so once popular colors are
taken (``excluded_colors``) less popular ones still receive full votes.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Optional

from scorepad_recommender.db.repositories.entity_repo import EntityRepository
from scorepad_recommender.learning.bounds import MAX_SCALAR
from scorepad_recommender.models.entity import Entity, EntityMeta
from scorepad_recommender.models.recommendation import RecommendationContext
from scorepad_recommender.models.relation import RelationItem
from scorepad_recommender.recommendations.context import ContextResolver
from scorepad_recommender.recommendations.voting import Voter, calculate_scores, rank_candidates
from scorepad_recommender.taxonomy.relation_taxonomy import (
    TEMPLATE_VOTER_ID,
    EntityKind,
    Factor,
    RelationKind,
)

TRANSPARENT = "transparent"


def template_voter(color_order: Sequence[str]) -> Optional[Voter]:
    """Build the synthetic ``templateSetting`` voter, or ``None`` for no hint."""
    ordered = [c for c in dict.fromkeys(color_order) if c]
    if not ordered:
        return None
    entity = Entity(
        kind=EntityKind.GAME,
        id=TEMPLATE_VOTER_ID,
        name="Template Settings",
        meta=EntityMeta(
            relations={RelationKind.COLORS: [RelationItem(id=c, count=0) for c in ordered]},
            confidence={RelationKind.COLORS: MAX_SCALAR},
        ),
    )
    return Voter(entity=entity, factor=Factor.TEMPLATE_SETTING)


class ColorRecommender:
    """Rank colors for one player.

    Args:
        resolver: Context resolver bound to the active connection.
        entities: Entity repository used to load the target player.
        palette_size: Per-voter vote limit (the whole palette).
        transparent: Sentinel color value that is never suggested.
    """

    def __init__(
        self,
        resolver: ContextResolver,
        entities: EntityRepository,
        palette_size: int = 20,
        transparent: str = TRANSPARENT,
    ) -> None:
        self.resolver = resolver
        self.entities = entities
        self.palette_size = palette_size
        self.transparent = transparent

    def generate_suggestions(
        self,
        context: RecommendationContext,
        weights: Mapping[str, float],
        color_order_hint: Sequence[str] = (),
        target_entity_id: Optional[str] = None,
        excluded_colors: Iterable[str] = (),
    ) -> list[str]:
        """Return colors for the target player, best first.

        Args:
            context: Situational context (only the game is used).
            weights: ``color_recommendation`` factor weights.
            color_order_hint: Preferred color order, e.g. template colors.
            target_entity_id: Stored player entity id, if the seat is linked.
            excluded_colors: Colors already taken at the table.

        Returns:
            Ranked colors, never including ``transparent`` or excluded ones.
        """
        voters: list[Voter] = []

        template = template_voter(color_order_hint)
        if template is not None:
            voters.append(template)

        game = self.resolver.find_game(context.external_game_id, context.game_name)
        if game is not None:
            voters.append(Voter(entity=game, factor=Factor.GAME))

        if target_entity_id:
            player = self.entities.get(EntityKind.PLAYER, target_entity_id)
            if player is not None:
                voters.append(Voter(entity=player, factor=Factor.PLAYER))

        scores = calculate_scores(
            voters,
            weights,
            RelationKind.COLORS,
            ignore_ids=excluded_colors,
            candidate_limit=self.palette_size,
        )
        return [c for c in rank_candidates(scores) if c != self.transparent]
