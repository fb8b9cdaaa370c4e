"""
Color assignment for a whole table.

Phase 1 walks the seats in order, asking the color engine for each seat
with every color already handed out excluded, and gives the seat its first
suggestion. Phase 2 fills the seats that got nothing from a fallback palette
(template colors first, then the rest of the system palette); once the
palette is used up it cycles, so every seat always ends up with a color.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Optional

logger = logging.getLogger(__name__)

# (target_entity_id, excluded_colors) -> ranked colors
ColorSuggester = Callable[[Optional[str], list[str]], list[str]]


def fallback_palette(template_colors: Sequence[str], system_palette: Sequence[str]) -> list[str]:
    """Template colors first, then the system colors not already listed."""
    preferred = [c for c in dict.fromkeys(template_colors) if c]
    return preferred + [c for c in system_palette if c not in preferred]


def assign_colors(
    seat_entity_ids: Sequence[Optional[str]],
    suggest: ColorSuggester,
    template_colors: Sequence[str],
    system_palette: Sequence[str],
) -> list[str]:
    """Return one color per seat.

    Args:
        seat_entity_ids: Linked player entity id per seat (``None`` when unlinked).
        suggest: Color engine call for one seat.
        template_colors: Preferred colors of the score-sheet template.
        system_palette: Full system palette.

    Returns:
        Colors in seat order. Unique while the palette lasts.

    Raises:
        ValueError: If a seat needs a fallback color and both palettes are empty.
    """
    assigned: list[Optional[str]] = [None] * len(seat_entity_ids)
    used: list[str] = []

    for index, entity_id in enumerate(seat_entity_ids):
        for color in suggest(entity_id, list(used)):
            if color not in used:
                assigned[index] = color
                used.append(color)
                break

    palette = fallback_palette(template_colors, system_palette)
    for index, color in enumerate(assigned):
        if color is not None:
            continue
        if not palette:
            raise ValueError("Cannot assign colors: the fallback palette is empty.")
        free = next((c for c in palette if c not in used), None)
        if free is None:
            free = palette[index % len(palette)]
        else:
            used.append(free)
        assigned[index] = free

    logger.debug("Assigned colors to %d seats.", len(assigned))
    return [c for c in assigned if c is not None]
