"""
Confidence adaptation for a single ranked list.

A list's confidence says how much its ballot should be trusted. Every time a
session supplies actual ids, each id is checked against the list's current
top-N window: hits raise confidence, misses lower it.

Tuning:
  - Short lists (len <= N) move fast (+0.5 per hit) but their misses are
    scaled down by ``len / N`` so a young list is not punished for gaps it
    could not have filled.
  - Long lists move slowly (+0.1 per hit, full -0.2 per miss).
  - Above 3.0, growth on long lists (len >= 10) is damped by ``1 - c / 5``
    so confidence approaches the 5.0 ceiling asymptotically.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Optional

from scorepad_recommender.learning.bounds import DAMPING_THRESHOLD, MAX_SCALAR, settle
from scorepad_recommender.models.relation import RelationItem, relation_ids

DEFAULT_CONFIDENCE = 1.0
SHORT_LIST_STEP = 0.5
LONG_LIST_STEP = 0.1
MISS_STEP = 0.2
DAMPING_MIN_LENGTH = 10


def calculate_confidence(
    current_list: Optional[Sequence[RelationItem]],
    incoming_ids: Iterable[str],
    current_confidence: float = DEFAULT_CONFIDENCE,
    window: int = 5,
) -> float:
    """Return the updated confidence of a ranked list.

    Args:
        current_list: The list *before* this session's promotion.
        incoming_ids: Ids the session actually used.
        current_confidence: Confidence before the update.
        window: Top-N prediction window for the list's relation kind.

    Returns:
        Updated confidence, rounded to 2 decimals and clamped to [0.2, 5.0].
        A missing or empty list returns ``current_confidence`` unchanged.
    """
    if not current_list:
        return current_confidence

    length = len(current_list)
    predicted = set(relation_ids(current_list[:window]))

    if length <= window:
        base_step = SHORT_LIST_STEP
        penalty = length / window if window > 0 else 0.0
    else:
        base_step = LONG_LIST_STEP
        penalty = 1.0

    damping = 1.0
    if current_confidence >= DAMPING_THRESHOLD and length >= DAMPING_MIN_LENGTH:
        damping = 1.0 - current_confidence / MAX_SCALAR

    confidence = current_confidence
    for item_id in incoming_ids:
        if item_id in predicted:
            confidence += base_step * damping
        else:
            confidence -= MISS_STEP * penalty

    return settle(confidence)
