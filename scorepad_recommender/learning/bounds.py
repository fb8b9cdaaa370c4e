"""Shared bounds for confidence and weight scalars."""

from __future__ import annotations

import math
from typing import Any, Optional

MIN_SCALAR = 0.2
MAX_SCALAR = 5.0
DAMPING_THRESHOLD = 3.0


def round_half_up(value: float, digits: int = 2) -> float:
    """Round half toward +infinity (``round(0.125, 2) == 0.13``)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def clamp_scalar(value: float) -> float:
    """Clamp to [0.2, 5.0]."""
    return max(MIN_SCALAR, min(MAX_SCALAR, value))


def settle(value: float) -> float:
    """Round to 2 decimals, then clamp. Every stored scalar passes through here."""
    return clamp_scalar(round_half_up(value))


def stored_scalar(value: Any) -> Optional[float]:
    """Read a persisted scalar: clamped when numeric and finite, else ``None``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number):
        return None
    return clamp_scalar(number)
