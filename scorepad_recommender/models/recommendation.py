"""
Recommendation inputs and outputs.

``RecommendationContext`` describes the situation a suggestion is asked for
(what, where, when, how many, with whom). Every field is optional: missing
dimensions simply contribute no voter.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scorepad_recommender.taxonomy.session_taxonomy import ScoringMode


class RecommendationContext(BaseModel):
    """Situational context for a suggestion request.

    Attributes:
        game_name: Display name of the game about to be played.
        external_game_id: BoardGameGeek id; preferred over the name.
        location_name: Where the session takes place.
        player_count: Seats at the table.
        scoring_mode: Winner rule of the session.
        timestamp: When the session takes place. ``None`` means now.
        known_player_ids: Player entity ids already seated.
    """

    model_config = ConfigDict(frozen=True)

    game_name: Optional[str] = None
    external_game_id: Optional[str] = None
    location_name: Optional[str] = None
    player_count: Optional[int] = None
    scoring_mode: Optional[ScoringMode] = None
    timestamp: Optional[datetime] = None
    known_player_ids: list[str] = Field(default_factory=list)

    @field_validator("external_game_id", mode="before")
    @classmethod
    def coerce_external_id(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return str(v)


class SuggestedPlayer(BaseModel):
    """One player suggestion.

    Attributes:
        id: Player entity id.
        name: Display name.
        score: Winning vote total when the player was picked.
        suggested_color: The player's most associated color, if any.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    score: float
    suggested_color: Optional[str] = None
