"""
Ranked-list promotion ("halving jump", count-bounded).

Each reinforced entry jumps toward the head of its list: its new position is
the smaller of half its old index and the first position whose count it
matches or beats, but never ahead of an entry reinforced earlier in the same
pass. New ids are placed as if they had been appended to the end of the old
list and then promoted by the same rule.

The result is deliberately NOT sorted by count: a long-standing favourite
that is used again after a pause climbs quickly, but not straight to the
top. ``promote()`` is pure — it never mutates its input.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from typing import Any

from scorepad_recommender.models.relation import RelationItem, normalize_relation_list


def _insert_position(
    result: list[RelationItem],
    original_index: int,
    count: int,
    floor_index: int,
) -> int:
    halved = original_index // 2
    count_index = len(result)
    for i in range(floor_index, len(result)):
        if result[i].count <= count:
            count_index = i
            break
    return max(floor_index, min(halved, count_index))


def promote(current: Any, active_ids: Iterable[str], max_length: int) -> list[RelationItem]:
    """Reinforce ``active_ids`` in a ranked list.

    Args:
        current: Existing ranked list in any supported stored shape.
        active_ids: Ids observed in this pass. Duplicates add one count each.
        max_length: Maximum length of the returned list.

    Returns:
        New ranked list, truncated to ``max_length``.

    Example::

        >>> old = [("A", 100), ("B", 80), ("C", 50), ("D", 30), ("E", 20), ("K", 85)]
        >>> [i.id for i in promote([{"id": i, "count": c} for i, c in old], ["K"], 10)]
        ['A', 'K', 'B', 'C', 'D', 'E']
    """
    items = normalize_relation_list(current)
    occurrences = Counter(active_ids)

    reinforced: list[tuple[int, RelationItem]] = []
    result: list[RelationItem] = []
    for index, item in enumerate(items):
        extra = occurrences.get(item.id)
        if extra:
            reinforced.append((index, RelationItem(id=item.id, count=item.count + extra)))
        else:
            result.append(item)

    floor_index = 0
    for original_index, item in reinforced:
        position = _insert_position(result, original_index, item.count, floor_index)
        result.insert(position, item)
        floor_index = position + 1

    known = {item.id for item in items}
    # Counter preserves first-insertion order, so new ids keep input order
    new_ids = [item_id for item_id in occurrences if item_id not in known]
    floor_index = 0
    for offset, item_id in enumerate(new_ids):
        item = RelationItem(id=item_id, count=occurrences[item_id])
        position = _insert_position(result, len(items) + offset, item.count, floor_index)
        result.insert(position, item)
        floor_index = position + 1

    return result[:max_length]
