"""
Ranked-list entries and legacy-shape normalization.

A ranked list is an ordered ``list[RelationItem]``. Its order is the output
of the promotion algorithm, not a sort by count, so callers must never
re-sort it.

``normalize_relation_list`` is the single read boundary for stored lists.
Older stores persisted several shapes:

  - ``[{"id": "p1", "count": 3, "weight": 0.4}, ...]``  (extra keys dropped)
  - ``["p1", "p2"]``                                    (count 1 each)
  - ``{"p1": 3, "p2": 7}``                              (sorted by count, desc)

Anything unrecognizable normalizes to ``[]``. The function never raises.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict


class RelationItem(BaseModel):
    """One ``(id, count)`` entry of a ranked list.

    Attributes:
        id: Target entity id (or a color value for ``colors`` lists).
        count: Number of times the association has been reinforced.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    count: int = 0


def _coerce_count(value: Any) -> int:
    if isinstance(value, (bool, int)):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    # NaN and infinities from hand-edited JSON count as never reinforced
    if not math.isfinite(number):
        return 0
    return int(number)


def _coerce_entry(entry: Any) -> RelationItem | None:
    if isinstance(entry, RelationItem):
        return entry
    if isinstance(entry, str):
        return RelationItem(id=entry, count=1) if entry else None
    if isinstance(entry, Mapping):
        entry_id = entry.get("id")
        if not isinstance(entry_id, str) or not entry_id:
            return None
        return RelationItem(id=entry_id, count=_coerce_count(entry.get("count", 0)))
    return None


def normalize_relation_list(raw: Any) -> list[RelationItem]:
    """Convert any stored ranked-list shape into ``list[RelationItem]``.

    Args:
        raw: A list of mappings/strings/items, an ``{id: count}`` mapping,
            ``None``, or garbage.

    Returns:
        A fresh list with duplicate and empty ids removed (first wins).
    """
    if raw is None:
        return []

    entries: list[Any]
    if isinstance(raw, Mapping):
        pairs = [
            (key, _coerce_count(val))
            for key, val in raw.items()
            if isinstance(key, str) and key
        ]
        # sorted() is stable, so equal counts keep their stored order
        pairs = sorted(pairs, key=lambda pair: pair[1], reverse=True)
        entries = [RelationItem(id=key, count=count) for key, count in pairs]
    elif isinstance(raw, (list, tuple)):
        entries = list(raw)
    else:
        return []

    result: list[RelationItem] = []
    seen: set[str] = set()
    for entry in entries:
        item = _coerce_entry(entry)
        if item is None or item.id in seen:
            continue
        seen.add(item.id)
        result.append(item)
    return result


def relation_ids(items: Sequence[RelationItem]) -> list[str]:
    """Return the ids of a ranked list, in order."""
    return [item.id for item in items]
