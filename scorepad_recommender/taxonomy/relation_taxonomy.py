"""
Relation taxonomy for the recommendation model.

Four vocabularies describe every learned association:
  - ``EntityKind``   — the *what*: which table partition an entity lives in.
  - ``RelationKind`` — the *where*: the key of a ranked list in ``meta.relations``.
  - ``Factor``       — the *who*: the tag a voter carries when it votes.
  - ``WeightDomain`` — the *which*: the persisted global weight configuration.

The lookup tables at the bottom tie them together: which relation kind an
entity kind is stored under, which weight domain a relation kind trains,
and which factor a source entity kind represents in each domain.

This module has NO imports from any other ``scorepad_recommender`` package.
"""

from enum import StrEnum


class EntityKind(StrEnum):
    """Partition of the entity store."""

    PLAYER = "player"
    """A person who has appeared in a session."""

    LOCATION = "location"
    """A named place where sessions are played."""

    GAME = "game"
    """A board game; may carry an external (BoardGameGeek) id."""

    WEEKDAY = "weekday"
    """Fixed bucket ``weekday_0`` .. ``weekday_6`` (0 = Sunday)."""

    TIMESLOT = "timeslot"
    """Fixed 3-hour bucket ``timeslot_0`` .. ``timeslot_7``."""

    PLAYER_COUNT = "player_count"
    """Fixed bucket ``count_<n>`` for the number of players at the table."""

    GAME_MODE = "game_mode"
    """Fixed bucket keyed by the scoring-mode value."""

    SESSION_CONTEXT = "session_context"
    """Singleton ``current_session`` pseudo-entity linking consecutive sessions."""


class RelationKind(StrEnum):
    """Key of a ranked list inside ``meta.relations``."""

    PLAYERS = "players"
    GAMES = "games"
    LOCATIONS = "locations"
    WEEKDAYS = "weekdays"
    TIME_SLOTS = "timeSlots"
    PLAYER_COUNTS = "playerCounts"
    GAME_MODES = "gameModes"
    COLORS = "colors"
    OTHERS = "others"
    """Fallback for entity kinds without a dedicated list."""


class Factor(StrEnum):
    """Voter tag; selects the global weight applied to a voter's ballot."""

    GAME = "game"
    LOCATION = "location"
    WEEKDAY = "weekday"
    TIME_SLOT = "timeSlot"
    PLAYER_COUNT = "playerCount"
    GAME_MODE = "gameMode"
    RELATED_PLAYER = "relatedPlayer"
    SESSION_CONTEXT = "sessionContext"
    TEMPLATE_SETTING = "templateSetting"
    PLAYER = "player"


class WeightDomain(StrEnum):
    """Persisted global weight configuration, one per prediction target."""

    PLAYER = "player_recommendation"
    COUNT = "count_recommendation"
    LOCATION = "location_recommendation"
    COLOR = "color_recommendation"


# ── Fixed entity ids ──────────────────────────────────────────────────────────

SESSION_CONTEXT_ID = "current_session"
TEMPLATE_VOTER_ID = "template_settings_virtual"
WEEKDAY_PREFIX = "weekday_"
TIMESLOT_PREFIX = "timeslot_"
COUNT_PREFIX = "count_"


# ── Lookup tables ─────────────────────────────────────────────────────────────

ENTITY_RELATION_KIND: dict[EntityKind, RelationKind] = {
    EntityKind.PLAYER: RelationKind.PLAYERS,
    EntityKind.GAME: RelationKind.GAMES,
    EntityKind.LOCATION: RelationKind.LOCATIONS,
    EntityKind.WEEKDAY: RelationKind.WEEKDAYS,
    EntityKind.TIMESLOT: RelationKind.TIME_SLOTS,
    EntityKind.PLAYER_COUNT: RelationKind.PLAYER_COUNTS,
    EntityKind.GAME_MODE: RelationKind.GAME_MODES,
}

BUCKET_RELATION_KINDS = frozenset({
    RelationKind.WEEKDAYS,
    RelationKind.TIME_SLOTS,
    RelationKind.PLAYER_COUNTS,
    RelationKind.GAME_MODES,
})

RELATION_WEIGHT_DOMAIN: dict[RelationKind, WeightDomain] = {
    RelationKind.PLAYERS: WeightDomain.PLAYER,
    RelationKind.PLAYER_COUNTS: WeightDomain.COUNT,
    RelationKind.LOCATIONS: WeightDomain.LOCATION,
    RelationKind.COLORS: WeightDomain.COLOR,
}

DOMAIN_FACTORS: dict[WeightDomain, tuple[Factor, ...]] = {
    WeightDomain.PLAYER: (
        Factor.GAME, Factor.LOCATION, Factor.WEEKDAY, Factor.TIME_SLOT,
        Factor.PLAYER_COUNT, Factor.GAME_MODE, Factor.RELATED_PLAYER,
        Factor.SESSION_CONTEXT,
    ),
    WeightDomain.COUNT: (
        Factor.GAME, Factor.LOCATION, Factor.WEEKDAY, Factor.TIME_SLOT,
        Factor.SESSION_CONTEXT,
    ),
    WeightDomain.LOCATION: (
        Factor.GAME, Factor.PLAYER_COUNT, Factor.WEEKDAY, Factor.TIME_SLOT,
        Factor.SESSION_CONTEXT, Factor.RELATED_PLAYER,
    ),
    WeightDomain.COLOR: (
        Factor.TEMPLATE_SETTING, Factor.GAME, Factor.PLAYER,
    ),
}

# Which factor a *source* entity kind trains in each domain. A source kind
# missing from a domain's map does not vote in that domain.
SOURCE_FACTOR: dict[WeightDomain, dict[EntityKind, Factor]] = {
    WeightDomain.PLAYER: {
        EntityKind.GAME: Factor.GAME,
        EntityKind.LOCATION: Factor.LOCATION,
        EntityKind.WEEKDAY: Factor.WEEKDAY,
        EntityKind.TIMESLOT: Factor.TIME_SLOT,
        EntityKind.PLAYER_COUNT: Factor.PLAYER_COUNT,
        EntityKind.GAME_MODE: Factor.GAME_MODE,
        EntityKind.PLAYER: Factor.RELATED_PLAYER,
        EntityKind.SESSION_CONTEXT: Factor.SESSION_CONTEXT,
    },
    WeightDomain.COUNT: {
        EntityKind.GAME: Factor.GAME,
        EntityKind.LOCATION: Factor.LOCATION,
        EntityKind.WEEKDAY: Factor.WEEKDAY,
        EntityKind.TIMESLOT: Factor.TIME_SLOT,
        EntityKind.SESSION_CONTEXT: Factor.SESSION_CONTEXT,
    },
    WeightDomain.LOCATION: {
        EntityKind.GAME: Factor.GAME,
        EntityKind.PLAYER_COUNT: Factor.PLAYER_COUNT,
        EntityKind.WEEKDAY: Factor.WEEKDAY,
        EntityKind.TIMESLOT: Factor.TIME_SLOT,
        EntityKind.SESSION_CONTEXT: Factor.SESSION_CONTEXT,
        EntityKind.PLAYER: Factor.RELATED_PLAYER,
    },
    WeightDomain.COLOR: {
        EntityKind.GAME: Factor.GAME,
        EntityKind.PLAYER: Factor.PLAYER,
    },
}

# Pool sizes for relation kinds whose candidate set is fixed. Player, game
# and location pools are live store counts; colors use the palette size.
FIXED_POOL_SIZES: dict[RelationKind, int] = {
    RelationKind.WEEKDAYS: 7,
    RelationKind.TIME_SLOTS: 8,
    RelationKind.PLAYER_COUNTS: 24,
    RelationKind.GAME_MODES: 5,
}
DEFAULT_POOL_SIZE = 100

DEFAULT_WEIGHT = 1.0


def relation_kind_for(kind: EntityKind) -> RelationKind:
    """Return the relation list an entity of ``kind`` is stored under."""
    return ENTITY_RELATION_KIND.get(kind, RelationKind.OTHERS)


def default_weights(domain: WeightDomain) -> dict[str, float]:
    """Return the default weight mapping (every factor 1.0) for ``domain``."""
    return {str(factor): DEFAULT_WEIGHT for factor in DOMAIN_FACTORS[domain]}
