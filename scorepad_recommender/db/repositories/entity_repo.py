"""Repository for the ``entities`` table (all entity kinds)."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from scorepad_recommender.db.repositories.base import BaseRepository, dump_json, load_json
from scorepad_recommender.models.entity import Entity, EntityMeta, name_key
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind

_COLUMNS = "kind, entity_id, name, last_used_ms, usage_count, external_id, meta"


class EntityRepository(BaseRepository):
    """CRUD and secondary-key lookups for stored entities.

    Ranked lists are normalized when rows are read, so callers only ever see
    the current ``list[RelationItem]`` shape regardless of what is stored.
    """

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Entity]:
        """Fetch a single entity by primary key, or ``None``."""
        row = self.fetchone(
            f"SELECT {_COLUMNS} FROM entities WHERE kind = ? AND entity_id = ?;",
            (str(kind), entity_id),
        )
        return _row_to_entity(row) if row else None

    def get_many(self, kind: EntityKind, entity_ids: Iterable[str]) -> list[Entity]:
        """Fetch every entity of ``kind`` whose id is in ``entity_ids``."""
        rows = self.fetchall_in(
            f"SELECT {_COLUMNS} FROM entities WHERE kind = ? AND entity_id IN ({{placeholders}});",
            [i for i in entity_ids if i],
            prefix_params=(str(kind),),
        )
        return [_row_to_entity(r) for r in rows]

    def find_by_name(self, kind: EntityKind, name: str) -> Optional[Entity]:
        """Case-insensitive, whitespace-trimmed name lookup.

        When several entities share a name the most recently used wins.
        """
        key = name_key(name)
        if not key:
            return None
        row = self.fetchone(
            f"SELECT {_COLUMNS} FROM entities WHERE kind = ? AND name_key = ? "
            "ORDER BY last_used_ms DESC LIMIT 1;",
            (str(kind), key),
        )
        return _row_to_entity(row) if row else None

    def find_by_names(self, kind: EntityKind, names: Iterable[str]) -> list[Entity]:
        """Fetch every entity of ``kind`` whose name matches one of ``names``."""
        keys = [k for k in (name_key(n) for n in names) if k]
        rows = self.fetchall_in(
            f"SELECT {_COLUMNS} FROM entities WHERE kind = ? AND name_key IN ({{placeholders}}) "
            "ORDER BY last_used_ms DESC;",
            keys,
            prefix_params=(str(kind),),
        )
        return [_row_to_entity(r) for r in rows]

    def find_by_external_id(self, kind: EntityKind, external_id: str) -> Optional[Entity]:
        """Lookup by external reference id (games: BoardGameGeek id)."""
        row = self.fetchone(
            f"SELECT {_COLUMNS} FROM entities WHERE kind = ? AND external_id = ? LIMIT 1;",
            (str(kind), external_id),
        )
        return _row_to_entity(row) if row else None

    def find_by_external_ids(
        self, kind: EntityKind, external_ids: Iterable[str]
    ) -> list[Entity]:
        """Fetch every entity of ``kind`` carrying one of ``external_ids``."""
        rows = self.fetchall_in(
            f"SELECT {_COLUMNS} FROM entities WHERE kind = ? AND external_id IN ({{placeholders}});",
            [i for i in external_ids if i],
            prefix_params=(str(kind),),
        )
        return [_row_to_entity(r) for r in rows]

    def list_by_kind(self, kind: EntityKind) -> list[Entity]:
        """Return all entities of ``kind``, most recently used first."""
        rows = self.fetchall(
            f"SELECT {_COLUMNS} FROM entities WHERE kind = ? ORDER BY last_used_ms DESC;",
            (str(kind),),
        )
        return [_row_to_entity(r) for r in rows]

    def count(self, kind: EntityKind) -> int:
        """Return the number of stored entities of ``kind``."""
        row = self.fetchone("SELECT COUNT(*) AS n FROM entities WHERE kind = ?;", (str(kind),))
        return int(row["n"]) if row else 0

    def upsert(self, entity: Entity) -> None:
        """Insert or fully replace one entity."""
        self.upsert_many([entity])

    def upsert_many(self, entities: Iterable[Entity]) -> int:
        """Insert or fully replace entities in bulk.

        Returns:
            Number of rows written.
        """
        params = [_entity_to_params(e) for e in entities]
        if not params:
            return 0
        self.executemany(
            """
            INSERT INTO entities
                (kind, entity_id, name, name_key, last_used_ms, usage_count,
                 external_id, meta)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (kind, entity_id) DO UPDATE SET
                name         = excluded.name,
                name_key     = excluded.name_key,
                last_used_ms = excluded.last_used_ms,
                usage_count  = excluded.usage_count,
                external_id  = excluded.external_id,
                meta         = excluded.meta;
            """,
            params,
        )
        return len(params)

    def clear(self) -> int:
        """Delete every entity. Returns the number of rows removed."""
        return self.execute("DELETE FROM entities;").rowcount


# ── Row converters ─────────────────────────────────────────────────────────────

def _entity_to_params(entity: Entity) -> tuple:
    return (
        str(entity.kind),
        entity.id,
        entity.name,
        name_key(entity.name),
        entity.last_used,
        entity.usage_count,
        entity.external_id,
        dump_json(entity.meta.model_dump(mode="json")),
    )


def _row_to_entity(row) -> Entity:
    meta = load_json(row["meta"], {})
    if not isinstance(meta, dict):
        meta = {}
    return Entity(
        kind=EntityKind(row["kind"]),
        id=row["entity_id"],
        name=row["name"],
        last_used=int(row["last_used_ms"] or 0),
        usage_count=int(row["usage_count"] or 0),
        external_id=row["external_id"],
        meta=EntityMeta.model_validate(meta),
    )
