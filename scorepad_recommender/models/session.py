"""
Finalized session records — the training input.

``SessionRecord`` is what the surrounding application hands over when a
session ends (or what a history import replays). Timestamps accept
datetimes, ISO strings, or epoch seconds/milliseconds (pydantic infers the
unit). External game ids are accepted as ints or strings and stored as
strings.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scorepad_recommender.taxonomy.session_taxonomy import ScoringMode

# Auto-generated seat ids and names used before a real person is picked.
PLACEHOLDER_ID_PREFIXES = ("slot_", "player_", "sys_player_")
SYSTEM_ID_PREFIXES = ("slot_", "player_", "sys_")
_DEFAULT_NAME_RE = re.compile(r"^(玩家|Player)\s?\d+$")


class SessionPlayer(BaseModel):
    """One seat of a finished session.

    Attributes:
        id: Seat id. Placeholder seats use ``slot_``/``player_``/``sys_player_``.
        name: Display name typed or picked for the seat.
        score: Final score (unused by the learner, kept for completeness).
        color: Seat color value, ``""`` or ``"transparent"`` when unset.
        linked_entity_id: Id of the stored player entity this seat was
            linked to, when the seat was filled from the roster.
        is_starter: Whether this seat took the first turn.
        color_manually_set: ``False`` when the color was auto-assigned;
            ``None`` (unknown, older records) counts as manual.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    score: float = 0.0
    color: str = ""
    linked_entity_id: Optional[str] = None
    is_starter: bool = False
    color_manually_set: Optional[bool] = None

    @property
    def has_placeholder_id(self) -> bool:
        return self.id.startswith(SYSTEM_ID_PREFIXES)

    @property
    def is_placeholder(self) -> bool:
        """True for an untouched auto-generated seat (no real person)."""
        return (
            self.id.startswith(PLACEHOLDER_ID_PREFIXES)
            and bool(_DEFAULT_NAME_RE.match(self.name.strip()))
            and not self.linked_entity_id
        )

    @property
    def target_id(self) -> Optional[str]:
        """Preferred id of the stored player entity for this seat."""
        if self.linked_entity_id:
            return self.linked_entity_id
        if not self.has_placeholder_id:
            return self.id
        return None

    def has_learnable_color(self, transparent: str = "transparent") -> bool:
        """True when the seat color was picked by a person and is a real color."""
        return (
            self.color_manually_set is not False
            and bool(self.color)
            and self.color != transparent
        )


class SessionRecord(BaseModel):
    """A finalized board-game session.

    Attributes:
        id: Record id; the processing-log key.
        game_name: Display name of the game played.
        external_game_id: Optional BoardGameGeek id.
        template_id: Optional score-sheet template id.
        scoring_mode: Winner rule; also trained as a ``game_mode`` bucket.
        start_time: When play started.
        end_time: When play finished. Defaults to ``start_time``.
        location_name: Where it was played, if recorded.
        location_id: Stored location id, if picked from the roster.
        players: Seats in table order.
        winner_ids: Seat ids of the winners.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    game_name: str
    external_game_id: Optional[str] = None
    template_id: Optional[str] = None
    scoring_mode: ScoringMode = ScoringMode.HIGHEST_WINS
    start_time: datetime
    end_time: Optional[datetime] = None
    location_name: Optional[str] = None
    location_id: Optional[str] = None
    players: list[SessionPlayer] = Field(default_factory=list)
    winner_ids: list[str] = Field(default_factory=list)

    @field_validator("external_game_id", mode="before")
    @classmethod
    def coerce_external_id(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("location_name")
    @classmethod
    def strip_location(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def finished_at(self) -> datetime:
        """End time, falling back to start time for records without one."""
        return self.end_time or self.start_time

    @property
    def has_location(self) -> bool:
        return bool(self.location_name)
