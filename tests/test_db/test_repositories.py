"""
Tests for the entity, processing-log and weight repositories.

What we test
------------
EntityRepository
  1. upsert / get round-trip preserves learned meta in canonical shape.
  2. Legacy meta JSON is normalized on read; corrupt meta reads as empty;
     non-finite counts and out-of-range confidences are corrected.
  3. Name lookups are case/whitespace-insensitive; newest entity wins.
  4. Bulk lookups (ids, names, external ids) work past the IN-chunk size.
  5. count / list_by_kind / clear.

ProcessingLogRepository
  6. upsert_many overwrites the status of an existing record.

WeightConfigRepository
  7. get() overlays stored values on the domain defaults.
  8. save() clamps values to [0.2, 5.0]; reads clamp them again and drop
     non-finite values.
"""

from __future__ import annotations

from scorepad_recommender.db.repositories.base import MAX_IN_PARAMS
from scorepad_recommender.db.repositories.entity_repo import EntityRepository
from scorepad_recommender.db.repositories.log_repo import ProcessingLogRepository
from scorepad_recommender.db.repositories.weight_repo import WeightConfigRepository
from scorepad_recommender.models.entity import Entity, EntityMeta
from scorepad_recommender.models.log import ProcessingLog
from scorepad_recommender.models.relation import RelationItem
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind, WeightDomain
from scorepad_recommender.taxonomy.session_taxonomy import LogStatus


def _player(entity_id: str, name: str, last_used: int = 0) -> Entity:
    return Entity(kind=EntityKind.PLAYER, id=entity_id, name=name, last_used=last_used)


# ── EntityRepository ──────────────────────────────────────────────────────────

class TestEntityRepository:
    def test_round_trip(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        entity = _player("p1", "Alice", last_used=1000)
        entity.usage_count = 3
        entity.meta = EntityMeta(
            relations={"players": [RelationItem(id="p2", count=4)]},
            confidence={"players": 1.5},
        )
        repo.upsert(entity)

        loaded = repo.get(EntityKind.PLAYER, "p1")
        assert loaded == entity

    def test_get_missing_returns_none(self, in_memory_db):
        assert EntityRepository(in_memory_db).get(EntityKind.PLAYER, "nope") is None

    def test_kind_partitions_ids(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        repo.upsert(_player("x", "Alice"))
        repo.upsert(Entity(kind=EntityKind.GAME, id="x", name="Azul"))
        assert repo.get(EntityKind.GAME, "x").name == "Azul"
        assert repo.get(EntityKind.PLAYER, "x").name == "Alice"

    def test_upsert_replaces(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        repo.upsert(_player("p1", "Alice"))
        repo.upsert(_player("p1", "Alicia"))
        assert repo.count(EntityKind.PLAYER) == 1
        assert repo.get(EntityKind.PLAYER, "p1").name == "Alicia"

    def test_legacy_meta_normalized_on_read(self, in_memory_db):
        in_memory_db.execute(
            "INSERT INTO entities (kind, entity_id, name, name_key, meta) "
            "VALUES ('player', 'p1', 'Alice', 'alice', ?);",
            ('{"relations": {"players": {"p2": 1, "p3": 5}, "games": ["g1"]}}',),
        )
        entity = EntityRepository(in_memory_db).get(EntityKind.PLAYER, "p1")
        assert entity.meta.relation("players") == [
            RelationItem(id="p3", count=5),
            RelationItem(id="p2", count=1),
        ]
        assert entity.meta.relation("games") == [RelationItem(id="g1", count=1)]

    def test_non_finite_and_out_of_range_meta_read_safely(self, in_memory_db):
        in_memory_db.execute(
            "INSERT INTO entities (kind, entity_id, name, name_key, meta) "
            "VALUES ('player', 'p1', 'Alice', 'alice', ?);",
            ('{"relations": {"players": [{"id": "p2", "count": NaN}]}, '
             '"confidence": {"players": 9.0, "games": Infinity}}',),
        )
        entity = EntityRepository(in_memory_db).get(EntityKind.PLAYER, "p1")
        assert entity.meta.relation("players") == [RelationItem(id="p2", count=0)]
        assert entity.meta.confidence == {"players": 5.0}

    def test_corrupt_meta_reads_as_empty(self, in_memory_db):
        in_memory_db.execute(
            "INSERT INTO entities (kind, entity_id, name, name_key, meta) "
            "VALUES ('player', 'p1', 'Alice', 'alice', '{not json');"
        )
        entity = EntityRepository(in_memory_db).get(EntityKind.PLAYER, "p1")
        assert entity.meta == EntityMeta()

    def test_find_by_name_is_case_insensitive(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        repo.upsert(_player("p1", "Alice"))
        assert repo.find_by_name(EntityKind.PLAYER, "  aLiCe ").id == "p1"
        assert repo.find_by_name(EntityKind.PLAYER, "") is None

    def test_find_by_name_prefers_most_recent(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        repo.upsert(_player("old", "Alice", last_used=100))
        repo.upsert(_player("new", "Alice", last_used=200))
        assert repo.find_by_name(EntityKind.PLAYER, "Alice").id == "new"

    def test_external_id_lookup(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        repo.upsert(Entity(kind=EntityKind.GAME, id="g1", name="Azul", external_id="230802"))
        assert repo.find_by_external_id(EntityKind.GAME, "230802").id == "g1"
        assert [e.id for e in repo.find_by_external_ids(EntityKind.GAME, ["230802", "1"])] == ["g1"]

    def test_bulk_lookups_span_chunks(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        total = MAX_IN_PARAMS + 20
        written = repo.upsert_many(_player(f"p{n}", f"Name {n}") for n in range(total))
        assert written == total

        ids = [f"p{n}" for n in range(total)]
        assert len(repo.get_many(EntityKind.PLAYER, ids + ids[:5])) == total
        names = [f"NAME {n}" for n in range(total)]
        assert len(repo.find_by_names(EntityKind.PLAYER, names)) == total

    def test_bulk_lookups_with_no_values(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        assert repo.get_many(EntityKind.PLAYER, []) == []
        assert repo.find_by_names(EntityKind.PLAYER, ["", "  "]) == []
        assert repo.upsert_many([]) == 0

    def test_list_by_kind_newest_first(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        repo.upsert(_player("a", "A", last_used=1))
        repo.upsert(_player("b", "B", last_used=3))
        repo.upsert(_player("c", "C", last_used=2))
        assert [e.id for e in repo.list_by_kind(EntityKind.PLAYER)] == ["b", "c", "a"]
        assert repo.list_by_kind(EntityKind.GAME) == []

    def test_clear(self, in_memory_db):
        repo = EntityRepository(in_memory_db)
        repo.upsert(_player("a", "A"))
        repo.upsert(_player("b", "B"))
        assert repo.clear() == 2
        assert repo.count(EntityKind.PLAYER) == 0


# ── ProcessingLogRepository ───────────────────────────────────────────────────

class TestProcessingLogRepository:
    def test_upsert_and_get(self, in_memory_db):
        repo = ProcessingLogRepository(in_memory_db)
        repo.upsert_many([
            ProcessingLog(record_id="r1", status=LogStatus.MISSING_LOCATION, last_processed_at=1),
        ])
        repo.upsert_many([
            ProcessingLog(record_id="r1", status=LogStatus.PROCESSED, last_processed_at=2),
            ProcessingLog(record_id="r2", status=LogStatus.PROCESSED, last_processed_at=2),
        ])
        assert repo.get("r1").status == LogStatus.PROCESSED
        assert repo.get("r1").last_processed_at == 2
        assert repo.count() == 2

    def test_get_many_only_known(self, in_memory_db):
        repo = ProcessingLogRepository(in_memory_db)
        repo.upsert_many([
            ProcessingLog(record_id="r1", status=LogStatus.PROCESSED, last_processed_at=1),
        ])
        assert set(repo.get_many(["r1", "r2"])) == {"r1"}
        assert repo.get("r2") is None

    def test_clear(self, in_memory_db):
        repo = ProcessingLogRepository(in_memory_db)
        repo.upsert_many([
            ProcessingLog(record_id="r1", status=LogStatus.PROCESSED, last_processed_at=1),
        ])
        repo.clear()
        assert repo.count() == 0


# ── WeightConfigRepository ────────────────────────────────────────────────────

class TestWeightConfigRepository:
    def test_defaults_when_unsaved(self, in_memory_db):
        repo = WeightConfigRepository(in_memory_db)
        assert repo.get_stored(WeightDomain.COUNT) is None
        weights = repo.get(WeightDomain.COUNT)
        assert set(weights) == {"game", "location", "weekday", "timeSlot", "sessionContext"}
        assert all(v == 1.0 for v in weights.values())

    def test_stored_values_overlay_defaults(self, in_memory_db):
        repo = WeightConfigRepository(in_memory_db)
        repo.save(WeightDomain.COLOR, {"game": 2.5}, updated_at=1)
        assert repo.get(WeightDomain.COLOR) == {
            "templateSetting": 1.0,
            "game": 2.5,
            "player": 1.0,
        }

    def test_save_clamps(self, in_memory_db):
        repo = WeightConfigRepository(in_memory_db)
        repo.save(WeightDomain.PLAYER, {"game": 9.0, "location": 0.0}, updated_at=1)
        stored = repo.get_stored(WeightDomain.PLAYER)
        assert stored == {"game": 5.0, "location": 0.2}

    def test_stored_values_clamped_on_read(self, in_memory_db):
        in_memory_db.execute(
            "INSERT INTO weight_configs (domain_id, weights, updated_at) "
            "VALUES ('count_recommendation', ?, 0);",
            ('{"game": 9.0, "location": 0.05, "weekday": NaN, "timeSlot": 2.5}',),
        )
        repo = WeightConfigRepository(in_memory_db)
        assert repo.get_stored(WeightDomain.COUNT) == {"game": 5.0, "location": 0.2, "timeSlot": 2.5}
        assert repo.get(WeightDomain.COUNT)["weekday"] == 1.0

    def test_corrupt_weights_fall_back_to_defaults(self, in_memory_db):
        in_memory_db.execute(
            "INSERT INTO weight_configs (domain_id, weights, updated_at) "
            "VALUES ('count_recommendation', '[1, 2]', 0);"
        )
        repo = WeightConfigRepository(in_memory_db)
        assert repo.get_stored(WeightDomain.COUNT) == {}
        assert repo.get(WeightDomain.COUNT)["game"] == 1.0
