"""
In-memory identity resolution (resolve-or-create).

``resolve_entity`` decides which stored entity a name refers to, or builds a
new one, looking only at an ``EntityIndex``. It never mutates the index:
the caller applies the returned ``Resolution`` with ``EntityIndex.apply``,
which registers new entities and attaches a newly learned external id.

Match order:
  1. preferred id           (e.g. a seat's linked player id, a location id)
  2. external id            (games only: BoardGameGeek id)
  3. name                   (trimmed, case-insensitive)
  4. create                 (preferred id, else ``id_factory()``)
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Optional

from scorepad_recommender.models.entity import Entity, name_key
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind

IdFactory = Callable[[], str]


def new_entity_id() -> str:
    """Default id factory: a random 32-char hex id."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Resolution:
    """Outcome of one resolve-or-create lookup.

    Attributes:
        entity: The matched or newly built entity.
        created: ``True`` when ``entity`` did not exist before.
        attach_external_id: External id to record on an existing entity
            that had none, else ``None``.
    """

    entity: Entity
    created: bool = False
    attach_external_id: Optional[str] = None


class EntityIndex:
    """Lookup maps over the entities loaded for a unit of work.

    When several entities share a name key, the first one added wins; load
    order (most recently used first) therefore decides.
    """

    def __init__(self, entities: Iterable[Entity] = ()) -> None:
        self.by_key: dict[tuple[str, str], Entity] = {}
        self.by_name: dict[tuple[str, str], Entity] = {}
        self.by_external_id: dict[tuple[str, str], Entity] = {}
        for entity in entities:
            self.add(entity)

    def add(self, entity: Entity) -> None:
        kind = str(entity.kind)
        self.by_key.setdefault((kind, entity.id), entity)
        key = name_key(entity.name)
        if key:
            self.by_name.setdefault((kind, key), entity)
        if entity.external_id:
            self.by_external_id.setdefault((kind, entity.external_id), entity)

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Entity]:
        return self.by_key.get((str(kind), entity_id))

    def apply(self, resolution: Resolution) -> Entity:
        """Register a resolution's side effects and return its entity."""
        entity = resolution.entity
        if resolution.attach_external_id:
            entity.external_id = resolution.attach_external_id
            self.by_external_id.setdefault(
                (str(entity.kind), resolution.attach_external_id), entity
            )
        if resolution.created:
            self.add(entity)
        return entity


def resolve_entity(
    index: EntityIndex,
    kind: EntityKind,
    name: Optional[str],
    preferred_id: Optional[str] = None,
    external_id: Optional[str] = None,
    id_factory: IdFactory = new_entity_id,
) -> Optional[Resolution]:
    """Find or build the entity ``name`` refers to.

    Args:
        index: Entities visible to this unit of work.
        kind: Entity kind to resolve within.
        name: Display name; blank names resolve to ``None``.
        preferred_id: Id to match first, and to use when creating.
        external_id: External reference id (only consulted for games).
        id_factory: Id source for new entities without a preferred id.

    Returns:
        A ``Resolution``, or ``None`` when ``name`` is blank.
    """
    clean_name = (name or "").strip()
    if not clean_name:
        return None

    kind_key = str(kind)
    external_id = external_id if kind == EntityKind.GAME else None

    match: Optional[Entity] = None
    if preferred_id:
        match = index.by_key.get((kind_key, preferred_id))
    if match is None and external_id:
        match = index.by_external_id.get((kind_key, external_id))
    if match is None:
        match = index.by_name.get((kind_key, name_key(clean_name)))

    if match is not None:
        attach = external_id if external_id and not match.external_id else None
        return Resolution(entity=match, attach_external_id=attach)

    entity = Entity(
        kind=kind,
        id=preferred_id or id_factory(),
        name=clean_name,
        external_id=external_id,
    )
    return Resolution(entity=entity, created=True)


def resolve_fixed(
    index: EntityIndex, kind: EntityKind, entity_id: str, name: str
) -> Resolution:
    """Find or build a fixed-id bucket entity (weekday, slot, count, mode, session)."""
    match = index.get(kind, entity_id)
    if match is not None:
        return Resolution(entity=match)
    return Resolution(entity=Entity(kind=kind, id=entity_id, name=name), created=True)
