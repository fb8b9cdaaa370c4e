"""
Session-level vocabularies.

  - ``ScoringMode``   — how a finished session decides its winner; each mode
                        is also a fixed ``game_mode`` bucket entity.
  - ``LogStatus``     — processing-log outcome for a finalized session.
  - ``TrainingMode``  — what a training pass does with one record.

This module has NO imports from any other ``scorepad_recommender`` package.
"""

from enum import StrEnum


class ScoringMode(StrEnum):
    """Winner rule of a session."""

    HIGHEST_WINS = "HIGHEST_WINS"
    LOWEST_WINS = "LOWEST_WINS"
    COOP = "COOP"
    COMPETITIVE_NO_SCORE = "COMPETITIVE_NO_SCORE"
    COOP_NO_SCORE = "COOP_NO_SCORE"


class LogStatus(StrEnum):
    """Outcome recorded after a session has been trained."""

    PROCESSED = "processed"
    """Fully trained; further submissions of the same record are skipped."""

    MISSING_LOCATION = "missing_location"
    """Trained without a location; a later submission with one trains it."""


class TrainingMode(StrEnum):
    """Action selected for a record by the processing-log check."""

    FULL = "full"
    """First sighting: every resolved entity is new context."""

    LOCATION_ONLY = "location_only"
    """Location added after the fact: only the location is new context."""

    SKIP = "skip"
    """Nothing new to learn."""
