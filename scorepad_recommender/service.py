"""
RecommendationEngine — the public entry point.

One object bound to an open SQLite connection and an ``AppConfig`` exposes
the training entry points, every suggestion engine, weight management and
the learned-state reset::

    from scorepad_recommender.config import load_config
    from scorepad_recommender.db.connection import get_connection
    from scorepad_recommender.service import RecommendationEngine

    config = load_config()
    with get_connection(config.database.db_path) as conn:
        engine = RecommendationEngine(conn, config)
        engine.record_session_completion(record)
        engine.suggest_players(RecommendationContext(game_name="Azul"))

Suggestions are read-only; training and reset run in their own exclusive
transactions.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Optional

from scorepad_recommender.config import AppConfig
from scorepad_recommender.db.connection import transaction
from scorepad_recommender.db.repositories.entity_repo import EntityRepository
from scorepad_recommender.db.repositories.log_repo import ProcessingLogRepository
from scorepad_recommender.db.repositories.weight_repo import WeightConfigRepository
from scorepad_recommender.models.recommendation import RecommendationContext, SuggestedPlayer
from scorepad_recommender.models.session import SessionPlayer, SessionRecord
from scorepad_recommender.recommendations.color_assignment import assign_colors
from scorepad_recommender.recommendations.colors import ColorRecommender
from scorepad_recommender.recommendations.context import ContextResolver
from scorepad_recommender.recommendations.counts import CountRecommender
from scorepad_recommender.recommendations.locations import LocationRecommender
from scorepad_recommender.recommendations.players import (
    PlayerRecommender,
    apply_player_suggestions,
)
from scorepad_recommender.taxonomy.relation_taxonomy import RelationKind, WeightDomain
from scorepad_recommender.taxonomy.session_taxonomy import TrainingMode
from scorepad_recommender.training.batch import BatchSummary, ProgressCallback, reprocess_all_history
from scorepad_recommender.training.identity import IdFactory, new_entity_id
from scorepad_recommender.training.recorder import record_session_completion
from scorepad_recommender.utils.time_utils import to_epoch_ms, utcnow

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """Facade over training, suggestion and maintenance operations.

    Args:
        conn: Open connection with the schema applied.
        config: Application configuration.
        id_factory: Id source for entities created during training.
        clock: Source of "now" (processing logs, weight timestamps).
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        config: AppConfig,
        id_factory: IdFactory = new_entity_id,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.conn = conn
        self.config = config
        self.id_factory = id_factory
        self.clock = clock

        self.entities = EntityRepository(conn)
        self.logs = ProcessingLogRepository(conn)
        self.weights = WeightConfigRepository(conn)

        windows = config.relations.windows
        fallback = config.relations.fallback_window
        resolver = ContextResolver(self.entities, config.training.time_zone)
        self.players = PlayerRecommender(
            resolver,
            self.entities,
            candidate_limit=windows.get(RelationKind.PLAYERS, fallback).limit,
        )
        self.counts = CountRecommender(
            resolver, limit=windows.get(RelationKind.PLAYER_COUNTS, fallback).limit
        )
        self.locations = LocationRecommender(
            resolver, self.entities, limit=windows.get(RelationKind.LOCATIONS, fallback).limit
        )
        self.colors = ColorRecommender(
            resolver,
            self.entities,
            palette_size=len(config.colors.palette),
            transparent=config.colors.transparent,
        )

    # ── Training ──────────────────────────────────────────────────────────────

    def record_session_completion(self, record: SessionRecord) -> TrainingMode:
        """Train on one finalized session. See ``training.recorder``."""
        return record_session_completion(
            self.conn, self.config, record, id_factory=self.id_factory, clock=self.clock
        )

    def reprocess_all_history(
        self,
        records: Iterable[SessionRecord],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchSummary:
        """Replay history in chunks. See ``training.batch``."""
        return reprocess_all_history(
            self.conn,
            self.config,
            records,
            on_progress=on_progress,
            cancel_event=cancel_event,
            id_factory=self.id_factory,
            clock=self.clock,
        )

    # ── Suggestions ───────────────────────────────────────────────────────────

    def suggest_players(
        self, context: RecommendationContext, limit: Optional[int] = None
    ) -> list[SuggestedPlayer]:
        return self.players.generate_suggestions(
            context,
            self.get_weights(WeightDomain.PLAYER),
            limit=limit or self.config.recommendation.default_player_limit,
        )

    def suggest_counts(self, context: RecommendationContext) -> list[int]:
        return self.counts.generate_suggestions(context, self.get_weights(WeightDomain.COUNT))

    def suggest_locations(self, context: RecommendationContext) -> list[str]:
        return self.locations.generate_suggestions(
            context, self.get_weights(WeightDomain.LOCATION)
        )

    def suggest_colors(
        self,
        context: RecommendationContext,
        color_order_hint: Sequence[str] = (),
        target_entity_id: Optional[str] = None,
        excluded_colors: Iterable[str] = (),
    ) -> list[str]:
        return self.colors.generate_suggestions(
            context,
            self.get_weights(WeightDomain.COLOR),
            color_order_hint=color_order_hint,
            target_entity_id=target_entity_id,
            excluded_colors=excluded_colors,
        )

    def assign_colors(
        self,
        context: RecommendationContext,
        seat_entity_ids: Sequence[Optional[str]],
        template_colors: Sequence[str] = (),
    ) -> list[str]:
        """Pick one distinct color per seat (see ``color_assignment``)."""
        weights = self.get_weights(WeightDomain.COLOR)

        def suggest(entity_id: Optional[str], taken: list[str]) -> list[str]:
            return self.colors.generate_suggestions(
                context,
                weights,
                color_order_hint=template_colors,
                target_entity_id=entity_id,
                excluded_colors=taken,
            )

        return assign_colors(
            seat_entity_ids, suggest, template_colors, self.config.colors.palette
        )

    def initialize_session_players(
        self, context: RecommendationContext, players: Sequence[SessionPlayer]
    ) -> list[SessionPlayer]:
        """Seat suggested players into a new session's placeholder seats.

        Never raises: on any failure the seats are returned unchanged so a
        session can always start.
        """
        try:
            suggestions = self.suggest_players(
                context.model_copy(update={"player_count": len(players)}),
                limit=len(players),
            )
        except Exception:
            logger.warning("Player suggestion failed; using default seats.", exc_info=True)
            return list(players)
        return apply_player_suggestions(players, suggestions)

    # ── Weights & maintenance ─────────────────────────────────────────────────

    def get_weights(self, domain_id: WeightDomain | str) -> dict[str, float]:
        """Return effective weights (defaults overlaid with stored values)."""
        return self.weights.get(WeightDomain(domain_id))

    def save_weights(self, domain_id: WeightDomain | str, weights: Mapping[str, float]) -> None:
        """Persist weights for a domain; values are clamped to [0.2, 5.0]."""
        domain = WeightDomain(domain_id)
        with transaction(self.conn):
            self.weights.save(domain, weights, to_epoch_ms(self.clock()))
        logger.info("Saved weights for %s.", domain)

    def reset_learned_state(self) -> None:
        """Delete every entity, processing log and stored weight configuration."""
        try:
            with transaction(self.conn):
                entities = self.entities.clear()
                logs = self.logs.clear()
                weights = self.weights.clear()
        except Exception:
            logger.exception("Reset failed; learned state unchanged.")
            raise
        logger.info(
            "Learned state reset | entities=%d | logs=%d | weight_domains=%d",
            entities, logs, weights,
        )
