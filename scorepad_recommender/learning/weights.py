"""
Global factor-weight adaptation.

A factor weight scales every ballot cast by voters carrying that factor
tag, across all entities. Weights learn which *kind* of signal (game,
weekday, co-player, ...) predicts a domain well:

  - hit  → +0.1, damped to ``0.1 * (1 - w / 5)`` once ``w >= 3.0``
  - miss → ``-0.2 * penalty_factor``

The penalty factor shrinks misses while the source list is still shorter
than its prediction window (see ``penalty_factor``).
"""

from __future__ import annotations

from scorepad_recommender.learning.bounds import DAMPING_THRESHOLD, MAX_SCALAR, settle

HIT_STEP = 0.1
MISS_STEP = 0.2


def penalty_factor(list_length: int, window: int) -> float:
    """Return the miss scale for a source list of ``list_length`` entries."""
    if list_length > window:
        return 1.0
    return list_length / window if window > 0 else 0.0


def adjust_weight(weight: float, is_hit: bool, penalty: float = 1.0) -> float:
    """Return the updated weight for a single prediction outcome.

    Args:
        weight: Current weight.
        is_hit: Whether the observed id was inside the source's top-N window.
        penalty: Miss scale from ``penalty_factor``.

    Returns:
        Updated weight, rounded to 2 decimals and clamped to [0.2, 5.0].
    """
    if is_hit:
        step = HIT_STEP
        if weight >= DAMPING_THRESHOLD:
            step = HIT_STEP * (1.0 - weight / MAX_SCALAR)
        return settle(weight + step)
    return settle(weight - MISS_STEP * penalty)
