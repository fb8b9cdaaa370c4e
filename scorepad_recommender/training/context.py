"""
Training context: the entities one session record trains.

Every record resolves, in order:

  location          always new context (when recorded)
  game              new context in full mode
  valid players     new context in full mode; untouched placeholder seats
                    are left out
  weekday, slot     buckets of the end time; new context in full mode
  player count      when the record has seats; new context in full mode
  game mode         new context in full mode
  current_session   single-record path only; always new context

A "new context" entity is one this pass treats as freshly observed: its
usage counter moves and it learns every other entity of the record. The
rest only learn the new-context entities.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from scorepad_recommender.models.entity import Entity
from scorepad_recommender.models.session import SessionPlayer, SessionRecord
from scorepad_recommender.taxonomy.relation_taxonomy import (
    COUNT_PREFIX,
    SESSION_CONTEXT_ID,
    TIMESLOT_PREFIX,
    WEEKDAY_PREFIX,
    EntityKind,
)
from scorepad_recommender.taxonomy.session_taxonomy import TrainingMode
from scorepad_recommender.utils.time_utils import time_slot_index, time_slot_label, weekday_index

SESSION_CONTEXT_NAME = "Current Session"

# (kind, name, preferred_id, external_id) -> entity or None
NamedResolver = Callable[[EntityKind, Optional[str], Optional[str], Optional[str]], Optional[Entity]]
# (kind, entity_id, name) -> entity
FixedResolver = Callable[[EntityKind, str, str], Entity]


@dataclass
class ResolvedEntity:
    """An entity taking part in one record's training pass."""

    entity: Entity
    is_new_context: bool


def valid_players(players: list[SessionPlayer]) -> list[SessionPlayer]:
    """Drop untouched placeholder seats (default name, no linked entity)."""
    return [p for p in players if not p.is_placeholder]


def resolve_training_context(
    record: SessionRecord,
    mode: TrainingMode,
    resolve_named: NamedResolver,
    resolve_fixed: FixedResolver,
    time_zone: Optional[str] = None,
    include_session_context: bool = True,
) -> list[ResolvedEntity]:
    """Return the deduplicated entity set ``record`` trains under ``mode``.

    Args:
        record: The finalized session.
        mode: ``FULL`` or ``LOCATION_ONLY``.
        resolve_named: Resolve-or-create for named entities.
        resolve_fixed: Find-or-create for fixed-id buckets.
        time_zone: Zone used to bucket the end time.
        include_session_context: Whether to add the ``current_session``
            pseudo-entity (off for history replays).

    Returns:
        Resolved entities in resolution order; an entity reached twice keeps
        its first flag.
    """
    full = mode == TrainingMode.FULL
    resolved: dict[tuple[str, str], ResolvedEntity] = {}

    def add(entity: Optional[Entity], is_new_context: bool) -> None:
        if entity is not None and entity.key not in resolved:
            resolved[entity.key] = ResolvedEntity(entity=entity, is_new_context=is_new_context)

    if record.location_name:
        add(resolve_named(EntityKind.LOCATION, record.location_name, record.location_id, None), True)

    add(resolve_named(EntityKind.GAME, record.game_name, None, record.external_game_id), full)

    for player in valid_players(record.players):
        add(resolve_named(EntityKind.PLAYER, player.name, player.target_id, None), full)

    finished = record.finished_at
    day = weekday_index(finished, time_zone)
    slot = time_slot_index(finished, time_zone)
    add(resolve_fixed(EntityKind.WEEKDAY, f"{WEEKDAY_PREFIX}{day}", str(day)), full)
    add(resolve_fixed(EntityKind.TIMESLOT, f"{TIMESLOT_PREFIX}{slot}", time_slot_label(slot)), full)

    seat_count = len(record.players)
    if seat_count > 0:
        add(resolve_fixed(EntityKind.PLAYER_COUNT, f"{COUNT_PREFIX}{seat_count}", str(seat_count)), full)

    mode_id = str(record.scoring_mode)
    add(resolve_fixed(EntityKind.GAME_MODE, mode_id, mode_id), full)

    if include_session_context:
        add(resolve_fixed(EntityKind.SESSION_CONTEXT, SESSION_CONTEXT_ID, SESSION_CONTEXT_NAME), True)

    return list(resolved.values())
