"""
Context resolution: situational context → voter set.

Each populated dimension of a ``RecommendationContext`` resolves to at most
one stored entity, tagged with the factor it votes under:

  game         → ``game``          (external id first, then name)
  location     → ``location``      (name)
  timestamp    → ``weekday`` and ``timeSlot`` buckets
  player count → ``playerCount`` bucket
  scoring mode → ``gameMode`` bucket
  always       → ``sessionContext`` (the ``current_session`` pseudo-entity)

Dimensions that are missing, or that have never been trained, contribute no
voter. Read-only.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

from scorepad_recommender.db.repositories.entity_repo import EntityRepository
from scorepad_recommender.models.entity import Entity
from scorepad_recommender.models.recommendation import RecommendationContext
from scorepad_recommender.recommendations.voting import Voter
from scorepad_recommender.taxonomy.relation_taxonomy import (
    COUNT_PREFIX,
    SESSION_CONTEXT_ID,
    TIMESLOT_PREFIX,
    WEEKDAY_PREFIX,
    EntityKind,
    Factor,
)
from scorepad_recommender.utils.time_utils import time_slot_index, utcnow, weekday_index

logger = logging.getLogger(__name__)


class ContextResolver:
    """Resolve voters for a context from the entity store.

    Args:
        entities: Entity repository bound to the active connection.
        time_zone: Zone used to bucket aware timestamps.
    """

    def __init__(self, entities: EntityRepository, time_zone: Optional[str] = None) -> None:
        self.entities = entities
        self.time_zone = time_zone

    def find_game(
        self, external_id: Optional[str], name: Optional[str]
    ) -> Optional[Entity]:
        """Lookup a game by external id, falling back to its name."""
        if external_id:
            game = self.entities.find_by_external_id(EntityKind.GAME, external_id)
            if game is not None:
                return game
        if name and name.strip():
            return self.entities.find_by_name(EntityKind.GAME, name)
        return None

    def resolve_base_context(self, context: RecommendationContext) -> list[Voter]:
        """Return the deduplicated voter set for ``context``."""
        found: list[tuple[Optional[Entity], Factor]] = []

        found.append((self.find_game(context.external_game_id, context.game_name), Factor.GAME))

        if context.location_name and context.location_name.strip():
            found.append((
                self.entities.find_by_name(EntityKind.LOCATION, context.location_name),
                Factor.LOCATION,
            ))

        when = context.timestamp or utcnow()
        found.append((
            self.entities.get(EntityKind.WEEKDAY, f"{WEEKDAY_PREFIX}{weekday_index(when, self.time_zone)}"),
            Factor.WEEKDAY,
        ))
        found.append((
            self.entities.get(EntityKind.TIMESLOT, f"{TIMESLOT_PREFIX}{time_slot_index(when, self.time_zone)}"),
            Factor.TIME_SLOT,
        ))

        if context.player_count:
            found.append((
                self.entities.get(EntityKind.PLAYER_COUNT, f"{COUNT_PREFIX}{context.player_count}"),
                Factor.PLAYER_COUNT,
            ))

        if context.scoring_mode:
            found.append((
                self.entities.get(EntityKind.GAME_MODE, str(context.scoring_mode)),
                Factor.GAME_MODE,
            ))

        found.append((
            self.entities.get(EntityKind.SESSION_CONTEXT, SESSION_CONTEXT_ID),
            Factor.SESSION_CONTEXT,
        ))

        voters: list[Voter] = []
        seen: set[tuple[str, str]] = set()
        for entity, factor in found:
            if entity is None or entity.key in seen:
                continue
            seen.add(entity.key)
            voters.append(Voter(entity=entity, factor=factor))

        logger.debug("Resolved %d context voters.", len(voters))
        return voters

    def resolve_player_voters(self, player_ids: Iterable[str]) -> list[Voter]:
        """Return ``relatedPlayer`` voters for the stored players among ``player_ids``."""
        ids = list(player_ids)
        if not ids:
            return []
        by_id = {p.id: p for p in self.entities.get_many(EntityKind.PLAYER, ids)}
        return [
            Voter(entity=by_id[pid], factor=Factor.RELATED_PLAYER)
            for pid in dict.fromkeys(ids)
            if pid in by_id
        ]
