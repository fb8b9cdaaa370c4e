"""
Training unit of work: harvest → bulk load → train in memory → bulk write.

Both training entry points run through ``TrainingUnitOfWork`` inside one
``transaction()``:

  load(records)   read the processing logs, harvest every name / id /
                  external id the records reference, and load the matching
                  entities, all fixed buckets, pool counts and global
                  weights in a handful of queries
  train(record)   select the mode, resolve the training context against the
                  in-memory index (creating entities as needed) and apply
                  the relation and color updates
  flush()         write changed entities, log entries and weights back

The database is only touched in ``load`` and ``flush``, so a single session
and a 200-record history chunk cost the same number of round trips.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from scorepad_recommender.config import AppConfig
from scorepad_recommender.db.repositories.entity_repo import EntityRepository
from scorepad_recommender.db.repositories.log_repo import ProcessingLogRepository
from scorepad_recommender.db.repositories.weight_repo import WeightConfigRepository
from scorepad_recommender.models.entity import Entity
from scorepad_recommender.models.log import ProcessingLog, select_training_mode, status_for
from scorepad_recommender.models.session import SessionRecord
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind, WeightDomain
from scorepad_recommender.taxonomy.session_taxonomy import TrainingMode
from scorepad_recommender.training.context import (
    ResolvedEntity,
    resolve_training_context,
    valid_players,
)
from scorepad_recommender.training.identity import (
    EntityIndex,
    IdFactory,
    new_entity_id,
    resolve_entity,
    resolve_fixed,
)
from scorepad_recommender.training.trainer import PoolSizes, RelationTrainer, WeightTracker
from scorepad_recommender.utils.time_utils import to_epoch_ms, utcnow

logger = logging.getLogger(__name__)

_FIXED_KINDS = (
    EntityKind.WEEKDAY,
    EntityKind.TIMESLOT,
    EntityKind.PLAYER_COUNT,
    EntityKind.GAME_MODE,
    EntityKind.SESSION_CONTEXT,
)


@dataclass(frozen=True)
class FlushStats:
    """Rows written by ``TrainingUnitOfWork.flush``."""

    entities: int
    logs: int
    weight_domains: int


@dataclass
class _Harvest:
    game_names: set[str]
    game_external_ids: set[str]
    location_ids: set[str]
    location_names: set[str]
    player_ids: set[str]
    player_names: set[str]


def _harvest(records: Sequence[SessionRecord]) -> _Harvest:
    harvest = _Harvest(set(), set(), set(), set(), set(), set())
    for record in records:
        if record.game_name.strip():
            harvest.game_names.add(record.game_name)
        if record.external_game_id:
            harvest.game_external_ids.add(record.external_game_id)
        if record.location_id:
            harvest.location_ids.add(record.location_id)
        if record.location_name:
            harvest.location_names.add(record.location_name)
        for player in valid_players(record.players):
            if player.target_id:
                harvest.player_ids.add(player.target_id)
            if player.name.strip():
                harvest.player_names.add(player.name)
    return harvest


class TrainingUnitOfWork:
    """In-memory training state for one transaction.

    Args:
        conn: Connection with an open transaction.
        config: Application configuration.
        id_factory: Id source for newly created entities.
        clock: Source of "now" for processing-log timestamps.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        config: AppConfig,
        id_factory: IdFactory = new_entity_id,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config
        self.id_factory = id_factory
        self.clock = clock
        self.entity_repo = EntityRepository(conn)
        self.log_repo = ProcessingLogRepository(conn)
        self.weight_repo = WeightConfigRepository(conn)
        self.trainer = RelationTrainer(config.relations, config.colors)

        self.index = EntityIndex()
        self.logs: dict[str, ProcessingLog] = {}
        self.pools = PoolSizes(0, 0, 0, len(config.colors.palette))
        self.weights = WeightTracker({})
        self._dirty_entities: dict[tuple[str, str], Entity] = {}
        self._dirty_logs: dict[str, ProcessingLog] = {}

    # ── Load ──────────────────────────────────────────────────────────────────

    def load(self, records: Sequence[SessionRecord]) -> list[SessionRecord]:
        """Bulk-load everything ``records`` can touch.

        Returns:
            The records that still need training (fully logged ones dropped).
        """
        self.logs = self.log_repo.get_many(r.id for r in records)
        pending = [r for r in records if self.mode_for(r) != TrainingMode.SKIP]

        harvest = _harvest(pending)
        loaded: list[Entity] = []
        if pending:
            repo = self.entity_repo
            loaded += repo.find_by_external_ids(EntityKind.GAME, harvest.game_external_ids)
            loaded += repo.find_by_names(EntityKind.GAME, harvest.game_names)
            loaded += repo.get_many(EntityKind.LOCATION, harvest.location_ids)
            loaded += repo.find_by_names(EntityKind.LOCATION, harvest.location_names)
            loaded += repo.get_many(EntityKind.PLAYER, harvest.player_ids)
            loaded += repo.find_by_names(EntityKind.PLAYER, harvest.player_names)
            for kind in _FIXED_KINDS:
                loaded += repo.list_by_kind(kind)

        unique: dict[tuple[str, str], Entity] = {}
        for entity in loaded:
            unique.setdefault(entity.key, entity)
        # Most recently used first, so shared names resolve to the latest entity
        self.index = EntityIndex(
            sorted(unique.values(), key=lambda e: e.last_used, reverse=True)
        )

        self.pools = PoolSizes(
            players=self.entity_repo.count(EntityKind.PLAYER),
            games=self.entity_repo.count(EntityKind.GAME),
            locations=self.entity_repo.count(EntityKind.LOCATION),
            colors=len(self.config.colors.palette),
        )
        self.weights = WeightTracker({d: self.weight_repo.get(d) for d in WeightDomain})

        logger.debug(
            "Loaded %d entities for %d/%d pending records.",
            len(self.index.by_key), len(pending), len(records),
        )
        return pending

    # ── Train ─────────────────────────────────────────────────────────────────

    def mode_for(self, record: SessionRecord) -> TrainingMode:
        return select_training_mode(self.logs.get(record.id), record.has_location)

    def train(self, record: SessionRecord, include_session_context: bool = True) -> TrainingMode:
        """Train one record against the in-memory state.

        Returns:
            The mode applied; ``SKIP`` leaves the state untouched.
        """
        mode = self.mode_for(record)
        if mode == TrainingMode.SKIP:
            return mode

        resolved = resolve_training_context(
            record,
            mode,
            self._resolve_named,
            self._resolve_fixed,
            time_zone=self.config.training.time_zone,
            include_session_context=include_session_context,
        )
        finished_ms = to_epoch_ms(record.finished_at)
        new_context = [r.entity for r in resolved if r.is_new_context]

        for item in resolved:
            self._train_source(item, resolved, new_context, record, finished_ms)

        entry = ProcessingLog(
            record_id=record.id,
            status=status_for(record.has_location),
            last_processed_at=to_epoch_ms(self.clock()),
        )
        self.logs[record.id] = entry
        self._dirty_logs[record.id] = entry
        return mode

    def _train_source(
        self,
        item: ResolvedEntity,
        resolved: list[ResolvedEntity],
        new_context: list[Entity],
        record: SessionRecord,
        finished_ms: int,
    ) -> None:
        source = item.entity
        if item.is_new_context:
            source.usage_count += 1
            source.last_used = max(source.last_used, finished_ms)
            self._mark_dirty(source)
            targets = [r.entity for r in resolved if r.entity.key != source.key]
        else:
            targets = new_context

        if self.trainer.train_relations(source, targets, self.weights, self.pools):
            self._mark_dirty(source)

        if item.is_new_context and source.kind in (EntityKind.GAME, EntityKind.PLAYER):
            if self.trainer.train_colors(source, record.players, self.weights, self.pools):
                self._mark_dirty(source)

    def _resolve_named(
        self,
        kind: EntityKind,
        name: Optional[str],
        preferred_id: Optional[str],
        external_id: Optional[str],
    ) -> Optional[Entity]:
        resolution = resolve_entity(
            self.index, kind, name, preferred_id, external_id, self.id_factory
        )
        if resolution is None:
            return None
        entity = self.index.apply(resolution)
        if resolution.created:
            self.pools.record_created(kind)
        if resolution.created or resolution.attach_external_id:
            self._mark_dirty(entity)
        return entity

    def _resolve_fixed(self, kind: EntityKind, entity_id: str, name: str) -> Entity:
        resolution = resolve_fixed(self.index, kind, entity_id, name)
        entity = self.index.apply(resolution)
        if resolution.created:
            self._mark_dirty(entity)
        return entity

    def _mark_dirty(self, entity: Entity) -> None:
        self._dirty_entities[entity.key] = entity

    # ── Flush ─────────────────────────────────────────────────────────────────

    def flush(self) -> FlushStats:
        """Write changed entities, log entries and weights."""
        now_ms = to_epoch_ms(self.clock())
        entities = self.entity_repo.upsert_many(self._dirty_entities.values())
        logs = self.log_repo.upsert_many(self._dirty_logs.values())
        for domain in self.weights.dirty:
            self.weight_repo.save(domain, self.weights.weights[domain], now_ms)

        stats = FlushStats(
            entities=entities, logs=logs, weight_domains=len(self.weights.dirty)
        )
        self._dirty_entities.clear()
        self._dirty_logs.clear()
        self.weights.dirty.clear()
        return stats
