"""
Prediction-window policy.

The window N is how many top entries of a ranked list count as "predicted"
when checking hits. Small fixed candidate sets (weekday, time slot, player
count, game mode, color) use a constant N; open-ended sets (players, games,
locations) scale N with the size of the candidate pool.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from scorepad_recommender.config import WindowPolicyConfig

FALLBACK_POLICY = WindowPolicyConfig(strategy="dynamic", ratio=0.25, limit=5)


def resolve_policy(
    relation_kind: str,
    policies: Mapping[str, WindowPolicyConfig],
    fallback: WindowPolicyConfig = FALLBACK_POLICY,
) -> WindowPolicyConfig:
    """Return the policy for ``relation_kind``; unknown kinds get ``fallback``."""
    return policies.get(relation_kind, fallback)


def prediction_window(policy: WindowPolicyConfig, pool_size: int) -> int:
    """Return N for ``policy`` given the live candidate pool size.

    Args:
        policy: Fixed or dynamic window policy.
        pool_size: Number of candidates of the relation kind.

    Returns:
        ``policy.limit`` for fixed policies, else
        ``clamp(ceil(pool_size * ratio), 1, limit)``.
    """
    if policy.strategy == "fixed":
        return policy.limit
    return max(1, min(policy.limit, math.ceil(pool_size * policy.ratio)))
