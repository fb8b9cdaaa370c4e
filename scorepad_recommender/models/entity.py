"""
Stored entity model — the node of the relationship graph.

Every candidate the engine can learn about (players, locations, games and
the fixed calendar/count/mode buckets) is an ``Entity``. Its ``meta`` block
carries the learned state: one ranked list per relation kind and one
confidence scalar per relation kind.

``Entity`` and ``EntityMeta`` are NOT frozen — the training pipeline mutates
usage counters, ranked lists and confidences in place inside a transaction
and writes the changed entities back in bulk.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scorepad_recommender.learning.bounds import stored_scalar
from scorepad_recommender.models.relation import RelationItem, normalize_relation_list
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind

DEFAULT_CONFIDENCE = 1.0


def name_key(name: str) -> str:
    """Return the lookup key for a display name (trimmed, case-folded)."""
    return name.strip().casefold()


class EntityMeta(BaseModel):
    """Learned state of one entity.

    Attributes:
        relations: Relation kind → ranked list. Legacy list shapes are
            normalized on construction.
        confidence: Relation kind → trust scalar in [0.2, 5.0].
    """

    model_config = ConfigDict(frozen=False)

    relations: dict[str, list[RelationItem]] = Field(default_factory=dict)
    confidence: dict[str, float] = Field(default_factory=dict)

    @field_validator("relations", mode="before")
    @classmethod
    def normalize_relations(cls, v: Any) -> dict[str, list[RelationItem]]:
        if not isinstance(v, dict):
            return {}
        return {
            str(kind): normalize_relation_list(raw)
            for kind, raw in v.items()
        }

    @field_validator("confidence", mode="before")
    @classmethod
    def drop_bad_confidence(cls, v: Any) -> dict[str, float]:
        if not isinstance(v, dict):
            return {}
        scalars = {str(kind): stored_scalar(val) for kind, val in v.items()}
        return {kind: val for kind, val in scalars.items() if val is not None}

    def relation(self, kind: str) -> list[RelationItem]:
        """Return the ranked list for ``kind`` (empty when never trained)."""
        return self.relations.get(kind, [])

    def confidence_for(self, kind: str) -> float:
        """Return the confidence for ``kind``, defaulting to 1.0."""
        return self.confidence.get(kind, DEFAULT_CONFIDENCE)


class Entity(BaseModel):
    """A stored candidate of one entity kind.

    Attributes:
        kind: Store partition, e.g. ``EntityKind.PLAYER``.
        id: Identifier, unique within ``kind``.
        name: Display name. Name lookups use ``name_key(name)``.
        last_used: Epoch milliseconds of the latest session that used it.
        usage_count: Number of sessions in which it was new context.
        external_id: Optional external reference (games: BoardGameGeek id).
        meta: Learned ranked lists and confidences.
    """

    model_config = ConfigDict(frozen=False)

    kind: EntityKind
    id: str
    name: str
    last_used: int = 0
    usage_count: int = 0
    external_id: Optional[str] = None
    meta: EntityMeta = Field(default_factory=EntityMeta)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v:
            raise ValueError("Entity id must be non-empty.")
        return v

    @property
    def key(self) -> tuple[str, str]:
        """``(kind, id)`` — the store's primary key."""
        return (str(self.kind), self.id)
