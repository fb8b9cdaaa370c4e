"""
Tests for in-memory resolve-or-create.

What we test
------------
1. Match order: preferred id, then external id (games only), then name.
2. New entities take the preferred id, else an id from the factory.
3. A matched game without an external id gets one attached on apply().
4. Blank names resolve to None; resolve_entity never mutates the index.
5. EntityIndex: the first entity added for a name wins.
"""

from __future__ import annotations

from scorepad_recommender.models.entity import Entity
from scorepad_recommender.taxonomy.relation_taxonomy import EntityKind
from scorepad_recommender.training.identity import (
    EntityIndex,
    new_entity_id,
    resolve_entity,
    resolve_fixed,
)


def _ids():
    return lambda: "new-id"


def _index() -> EntityIndex:
    return EntityIndex([
        Entity(kind=EntityKind.PLAYER, id="p-alice", name="Alice"),
        Entity(kind=EntityKind.PLAYER, id="p-alice-old", name="alice"),
        Entity(kind=EntityKind.GAME, id="g-azul", name="Azul"),
        Entity(kind=EntityKind.GAME, id="g-cat", name="Catan", external_id="13"),
    ])


class TestResolveEntity:
    def test_preferred_id_wins(self):
        res = resolve_entity(_index(), EntityKind.PLAYER, "Somebody Else", "p-alice", id_factory=_ids())
        assert res.entity.id == "p-alice"
        assert not res.created

    def test_unknown_preferred_id_falls_back_to_name(self):
        res = resolve_entity(_index(), EntityKind.PLAYER, " ALICE ", "p-ghost", id_factory=_ids())
        assert res.entity.id == "p-alice"

    def test_external_id_before_name(self):
        res = resolve_entity(_index(), EntityKind.GAME, "Azul", external_id="13", id_factory=_ids())
        assert res.entity.id == "g-cat"
        assert res.attach_external_id is None

    def test_external_id_ignored_for_non_games(self):
        index = _index()
        index.add(Entity(kind=EntityKind.PLAYER, id="p-ext", name="Ext", external_id="13"))
        res = resolve_entity(index, EntityKind.PLAYER, "Alice", external_id="13", id_factory=_ids())
        assert res.entity.id == "p-alice"

    def test_name_match_attaches_external_id(self):
        index = _index()
        res = resolve_entity(index, EntityKind.GAME, "azul", external_id="230802", id_factory=_ids())
        assert res.entity.id == "g-azul"
        assert res.attach_external_id == "230802"
        assert index.get(EntityKind.GAME, "g-azul").external_id is None

        index.apply(res)
        assert index.get(EntityKind.GAME, "g-azul").external_id == "230802"
        assert index.by_external_id[("game", "230802")].id == "g-azul"

    def test_existing_external_id_not_overwritten(self):
        res = resolve_entity(_index(), EntityKind.GAME, "Catan", external_id="99", id_factory=_ids())
        assert res.entity.id == "g-cat"
        assert res.attach_external_id is None

    def test_create_with_preferred_id(self):
        res = resolve_entity(_index(), EntityKind.PLAYER, " Dave ", "p-dave", id_factory=_ids())
        assert res.created
        assert (res.entity.id, res.entity.name) == ("p-dave", "Dave")

    def test_create_with_factory_id(self):
        index = _index()
        res = resolve_entity(index, EntityKind.GAME, "Wingspan", external_id="266192", id_factory=_ids())
        assert res.created
        assert res.entity.id == "new-id"
        assert res.entity.external_id == "266192"
        assert index.get(EntityKind.GAME, "new-id") is None

        index.apply(res)
        assert index.by_name[("game", "wingspan")].id == "new-id"

    def test_blank_name(self):
        assert resolve_entity(_index(), EntityKind.PLAYER, "   ", "p-alice") is None
        assert resolve_entity(_index(), EntityKind.PLAYER, None) is None

    def test_default_factory_ids_are_unique(self):
        assert new_entity_id() != new_entity_id()


class TestResolveFixed:
    def test_existing_bucket(self):
        index = EntityIndex([Entity(kind=EntityKind.WEEKDAY, id="weekday_6", name="6")])
        res = resolve_fixed(index, EntityKind.WEEKDAY, "weekday_6", "6")
        assert not res.created

    def test_new_bucket(self):
        res = resolve_fixed(EntityIndex(), EntityKind.TIMESLOT, "timeslot_2", "06-09")
        assert res.created
        assert (res.entity.id, res.entity.name) == ("timeslot_2", "06-09")


class TestEntityIndex:
    def test_first_added_wins_shared_name(self):
        assert _index().by_name[("player", "alice")].id == "p-alice"

    def test_kinds_do_not_collide(self):
        index = EntityIndex([
            Entity(kind=EntityKind.PLAYER, id="x", name="Same"),
            Entity(kind=EntityKind.GAME, id="x", name="Same"),
        ])
        assert index.get(EntityKind.GAME, "x").kind == EntityKind.GAME
        assert index.get(EntityKind.PLAYER, "x").kind == EntityKind.PLAYER
