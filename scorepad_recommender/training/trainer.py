"""
Per-source relation training.

For one source entity and the targets it observed in a session, grouped by
relation kind, the update runs in a fixed order against the *old* ranked
list:

  1. global factor weight  — was each target inside the source's top-N window?
  2. list confidence       — same question, scoring the list itself
  3. rank promotion        — reinforce the targets in the list

Steps 1 and 2 must see the list before step 3 rewrites it, otherwise every
target would count as a hit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional

from scorepad_recommender.config import ColorsConfig, RelationsConfig
from scorepad_recommender.learning.confidence import calculate_confidence
from scorepad_recommender.learning.bounds import MAX_SCALAR
from scorepad_recommender.learning.ranking import promote
from scorepad_recommender.learning.weights import adjust_weight, penalty_factor
from scorepad_recommender.learning.window import prediction_window, resolve_policy
from scorepad_recommender.models.entity import Entity, name_key
from scorepad_recommender.models.relation import RelationItem, relation_ids
from scorepad_recommender.models.session import SessionPlayer
from scorepad_recommender.taxonomy.relation_taxonomy import (
    BUCKET_RELATION_KINDS,
    DEFAULT_POOL_SIZE,
    FIXED_POOL_SIZES,
    RELATION_WEIGHT_DOMAIN,
    SOURCE_FACTOR,
    EntityKind,
    RelationKind,
    WeightDomain,
    relation_kind_for,
)

logger = logging.getLogger(__name__)

_LIVE_POOLS: dict[EntityKind, RelationKind] = {
    EntityKind.PLAYER: RelationKind.PLAYERS,
    EntityKind.GAME: RelationKind.GAMES,
    EntityKind.LOCATION: RelationKind.LOCATIONS,
}


class PoolSizes:
    """Candidate pool size per relation kind.

    Player, game and location pools start from store counts and grow as the
    current unit of work creates entities; the rest are fixed.
    """

    def __init__(self, players: int, games: int, locations: int, colors: int) -> None:
        self._sizes: dict[str, int] = {str(k): v for k, v in FIXED_POOL_SIZES.items()}
        self._sizes[RelationKind.PLAYERS] = players
        self._sizes[RelationKind.GAMES] = games
        self._sizes[RelationKind.LOCATIONS] = locations
        self._sizes[RelationKind.COLORS] = colors

    def for_relation(self, relation_kind: str) -> int:
        return self._sizes.get(relation_kind, DEFAULT_POOL_SIZE)

    def record_created(self, kind: EntityKind) -> None:
        relation = _LIVE_POOLS.get(kind)
        if relation is not None:
            self._sizes[relation] += 1


class WeightTracker:
    """Mutable copy of the global weights for one unit of work.

    Attributes:
        weights: Domain → factor → weight.
        dirty: Domains whose weights changed and must be written back.
    """

    def __init__(self, weights: Mapping[WeightDomain, Mapping[str, float]]) -> None:
        self.weights: dict[WeightDomain, dict[str, float]] = {
            domain: dict(values) for domain, values in weights.items()
        }
        self.dirty: set[WeightDomain] = set()

    def evaluate(
        self,
        domain: WeightDomain,
        factor: str,
        current_list: Sequence[RelationItem],
        active_ids: Iterable[str],
        window: int,
    ) -> None:
        """Adjust ``factor`` once per active id against the list's top-N window."""
        penalty = penalty_factor(len(current_list), window)
        predicted = set(relation_ids(current_list[:window]))
        values = self.weights.setdefault(domain, {})
        for active_id in active_ids:
            old = values.get(factor, 1.0)
            new = adjust_weight(old, active_id in predicted, penalty)
            if new != old:
                values[factor] = new
                self.dirty.add(domain)


class RelationTrainer:
    """Apply weight, confidence and ranking updates to source entities.

    Args:
        relations: List sizes and window policies.
        colors: Palette settings for color learning.
    """

    def __init__(self, relations: RelationsConfig, colors: ColorsConfig) -> None:
        self.relations = relations
        self.colors = colors

    def window(self, relation_kind: str, pools: PoolSizes) -> int:
        policy = resolve_policy(
            relation_kind, self.relations.windows, self.relations.fallback_window
        )
        return prediction_window(policy, pools.for_relation(relation_kind))

    def list_size(self, relation_kind: str) -> int:
        if relation_kind in BUCKET_RELATION_KINDS:
            return self.relations.time_list_size
        return self.relations.default_list_size

    def train_relations(
        self,
        source: Entity,
        targets: Iterable[Entity],
        weights: WeightTracker,
        pools: PoolSizes,
    ) -> bool:
        """Train ``source`` on ``targets``.

        Returns:
            ``True`` when any list was updated.
        """
        grouped: dict[str, list[str]] = {}
        for target in targets:
            if target.kind == EntityKind.SESSION_CONTEXT:
                continue
            grouped.setdefault(relation_kind_for(target.kind), []).append(target.id)

        for relation_kind, active_ids in grouped.items():
            self._update(source, relation_kind, active_ids, weights, pools)
        return bool(grouped)

    def train_colors(
        self,
        source: Entity,
        players: Sequence[SessionPlayer],
        weights: WeightTracker,
        pools: PoolSizes,
    ) -> bool:
        """Teach a game or player the colors picked by hand in this session.

        Games learn every hand-picked color; players learn the colors of the
        seats that map to them (by target id or by name).

        Returns:
            ``True`` when the source's color list changed.
        """
        eligible = [
            p for p in players
            if not p.is_placeholder and p.has_learnable_color(self.colors.transparent)
        ]

        colors: list[str]
        if source.kind == EntityKind.GAME:
            colors = [p.color for p in eligible]
        elif source.kind == EntityKind.PLAYER:
            source_name = name_key(source.name)
            colors = [
                p.color for p in eligible
                if p.target_id == source.id or name_key(p.name) == source_name
            ]
        else:
            return False

        if not colors:
            return False
        self._update(source, RelationKind.COLORS, colors, weights, pools)
        return True

    def _update(
        self,
        source: Entity,
        relation_kind: str,
        active_ids: list[str],
        weights: WeightTracker,
        pools: PoolSizes,
    ) -> None:
        current = source.meta.relation(relation_kind)
        window = self.window(relation_kind, pools)

        domain = RELATION_WEIGHT_DOMAIN.get(relation_kind)
        factor: Optional[str] = None
        if domain is not None:
            factor = SOURCE_FACTOR[domain].get(source.kind)
        if domain is not None and factor is not None:
            weights.evaluate(domain, factor, current, active_ids, window)

        if source.kind == EntityKind.SESSION_CONTEXT:
            confidence = MAX_SCALAR
        else:
            confidence = calculate_confidence(
                current, active_ids, source.meta.confidence_for(relation_kind), window
            )

        source.meta.relations[relation_kind] = promote(
            current, active_ids, self.list_size(relation_kind)
        )
        source.meta.confidence[relation_kind] = confidence
