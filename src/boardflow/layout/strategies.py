"""Pure position functions for the two region layout strategies.

Every function here depends only on the region geometry, the placement
counters and static configuration, so repeated calls with the same inputs
always produce the same coordinates.
"""
from __future__ import annotations

import math

from boardflow.config import CardSettings, LayoutSettings
from boardflow.models import LayoutStrategy, PlacementCounters, Position, Region


def counter_bucket(region: Region, score: int, counters: PlacementCounters) -> int:
    """Return the counter key a placement in ``region`` advances."""

    if region.strategy is LayoutStrategy.GENERAL_GRID:
        return counters.max_score
    return min(counters.max_score, max(counters.min_score, score))


def clamp_to_region(
    region: Region,
    x: float,
    y: float,
    cards: CardSettings,
    margin: float,
) -> Position | None:
    """Clamp ``(x, y)`` so a card stays ``margin`` inside ``region``.

    Returns ``None`` when no such position exists.
    """

    min_x = region.left + cards.width / 2 + margin
    max_x = region.right - cards.width / 2 - margin
    min_y = region.top + cards.height / 2 + margin
    max_y = region.bottom - cards.height / 2 - margin
    if min_x > max_x or min_y > max_y:
        return None
    clamped = Position(max(min_x, min(max_x, x)), max(min_y, min(max_y, y)))
    if not region.contains(clamped.x, clamped.y):
        return None
    return clamped


def score_sectioned_position(
    region: Region,
    score: int,
    counters: PlacementCounters,
    cards: CardSettings,
    layout: LayoutSettings,
) -> Position:
    max_score = counters.max_score
    score = min(max_score, max(counters.min_score, score))
    ipc = max(1, layout.items_per_column)
    section_width = region.width / max_score
    section = max_score - score
    col_step = cards.width + cards.spacing * layout.horizontal_factor
    row_step = cards.height + cards.spacing * layout.vertical_factor

    def section_base(index: int) -> float:
        return region.left + layout.min_margin + index * section_width + cards.width / 2

    total = counters.get(score)
    column = total // ipc
    row = total % ipc
    top_start = region.top + layout.header_margin + cards.height / 2
    right_bound = region.right - cards.width / 2 - layout.bounds_margin
    bottom_bound = region.bottom - cards.height - layout.safety_margin

    x = section_base(section) + column * col_step
    y = top_start + row * row_step

    if x > right_bound:
        next_section = section + 1
        if next_section < max_score:
            neighbour_columns = math.ceil(counters.get(max_score - next_section) / ipc)
            candidate = section_base(next_section) + neighbour_columns * col_step
            if candidate <= right_bound:
                x = candidate
        if x > right_bound:
            x = section_base(section)
            y += row_step

    if y > bottom_bound:
        x += col_step
        y = top_start
        if x > right_bound:
            x = region.left + layout.min_margin + cards.width / 2
            y = region.top + region.height * layout.fallback_y_ratio

    return Position(x, y)


def general_grid_dimensions(region: Region, cards: CardSettings, layout: LayoutSettings) -> tuple[int, int]:
    """Return ``(max_columns, items_per_column)`` for ``region``."""

    effective_width = region.width - 2 * layout.min_margin
    effective_height = region.height - 2 * layout.min_margin
    max_columns = max(layout.min_columns, math.floor(effective_width / (cards.width + cards.spacing)))
    items_per_column = max(
        layout.min_items_per_column,
        math.floor(effective_height / (cards.height + cards.spacing)),
    )
    return max_columns, items_per_column


def general_grid_position(
    region: Region,
    total: int,
    cards: CardSettings,
    layout: LayoutSettings,
) -> Position:
    max_columns, items_per_column = general_grid_dimensions(region, cards, layout)
    effective_width = region.width - 2 * layout.min_margin
    column_width = effective_width / max_columns
    row_height = cards.height + cards.spacing

    layer = total // (items_per_column * max_columns)
    column = (total // items_per_column) % max_columns
    row = total % items_per_column

    x = region.left + layout.min_margin + cards.width / 2 + column * column_width
    y = (
        region.top
        + layout.min_margin
        + cards.height / 2
        + row * row_height
        + layer * items_per_column * row_height
    )
    return Position(x, y)


def compute_position(
    region: Region,
    score: int,
    counters: PlacementCounters,
    cards: CardSettings,
    layout: LayoutSettings,
) -> Position:
    """Dispatch on the region's layout strategy."""

    if region.strategy is LayoutStrategy.GENERAL_GRID:
        total = counters.get(counter_bucket(region, score, counters))
        return general_grid_position(region, total, cards, layout)
    return score_sectioned_position(region, score, counters, cards, layout)


__all__ = [
    "clamp_to_region",
    "compute_position",
    "counter_bucket",
    "general_grid_dimensions",
    "general_grid_position",
    "score_sectioned_position",
]
