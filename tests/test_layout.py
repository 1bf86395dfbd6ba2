from __future__ import annotations

import pytest

from boardflow.config import CardSettings, LayoutSettings
from boardflow.errors import PlacementOutOfBoundsError
from boardflow.layout import (
    PackingEngine,
    clamp_to_region,
    compute_position,
    general_grid_dimensions,
    general_grid_position,
    score_sectioned_position,
)
from boardflow.models import LayoutStrategy, PlacementCounters, Position, Region

SMALL_CARDS = CardSettings(width=200.0, height=200.0, spacing=50.0)
LAYOUT = LayoutSettings()


def _scored_region(width: float = 900.0, height: float = 1600.0) -> Region:
    # Centered so the top-left corner sits at the origin.
    return Region(id="r-1", title="Scores", x=width / 2, y=height / 2, width=width, height=height)


def _general_region() -> Region:
    return Region(
        id="r-2",
        title="Thinking-Dialogue",
        x=600.0,
        y=800.0,
        width=1200.0,
        height=1600.0,
        strategy=LayoutStrategy.GENERAL_GRID,
    )


def test_first_card_per_score_starts_its_own_section() -> None:
    region = _scored_region()
    counters = PlacementCounters(1, 3)

    positions = {
        score: score_sectioned_position(region, score, counters, SMALL_CARDS, LAYOUT) for score in (3, 2, 1)
    }

    assert positions[3] == Position(120.0, 140.0)
    assert positions[2] == Position(420.0, 140.0)
    assert positions[1] == Position(720.0, 140.0)


def test_positions_are_deterministic() -> None:
    region = _scored_region()
    counters = PlacementCounters(1, 3)
    counters.advance(2, 7)

    first = score_sectioned_position(region, 2, counters, SMALL_CARDS, LAYOUT)
    second = score_sectioned_position(region, 2, counters, SMALL_CARDS, LAYOUT)

    assert first == second
    assert first == Position(662.5, 140.0)


def test_rows_stack_down_the_section() -> None:
    region = _scored_region()
    counters = PlacementCounters(1, 3)
    counters.advance(3, 2)

    assert score_sectioned_position(region, 3, counters, SMALL_CARDS, LAYOUT) == Position(120.0, 660.0)


def test_bottom_overflow_starts_next_column() -> None:
    region = _scored_region()
    counters = PlacementCounters(1, 3)
    counters.advance(3, 5)

    assert score_sectioned_position(region, 3, counters, SMALL_CARDS, LAYOUT) == Position(362.5, 140.0)


def test_right_overflow_moves_into_adjacent_section_with_room() -> None:
    region = _scored_region()
    counters = PlacementCounters(1, 3)
    counters.advance(2, 20)

    assert score_sectioned_position(region, 2, counters, SMALL_CARDS, LAYOUT) == Position(720.0, 140.0)


def test_right_overflow_without_room_wraps_to_next_row() -> None:
    region = _scored_region()
    counters = PlacementCounters(1, 3)
    counters.advance(2, 20)
    counters.advance(1, 10)

    assert score_sectioned_position(region, 2, counters, SMALL_CARDS, LAYOUT) == Position(420.0, 400.0)


def test_last_section_overflow_uses_fallback_row() -> None:
    region = _scored_region()
    counters = PlacementCounters(1, 3)
    counters.advance(1, 5)

    assert score_sectioned_position(region, 1, counters, SMALL_CARDS, LAYOUT) == Position(120.0, 1440.0)


def test_general_grid_dimensions_respect_minimums() -> None:
    assert general_grid_dimensions(_general_region(), CardSettings(), LAYOUT) == (3, 6)

    narrow = Region(id="r-3", title="Narrow", x=0.0, y=0.0, width=300.0, height=300.0)
    assert general_grid_dimensions(narrow, CardSettings(), LAYOUT) == (2, 6)


def test_general_grid_fills_columns_then_layers() -> None:
    region = _general_region()
    cards = CardSettings()

    assert general_grid_position(region, 0, cards, LAYOUT) == Position(170.0, 120.0)

    seventh = general_grid_position(region, 7, cards, LAYOUT)
    assert seventh.x == pytest.approx(170.0 + 1160.0 / 3)
    assert seventh.y == pytest.approx(370.0)

    second_layer = general_grid_position(region, 18, cards, LAYOUT)
    assert second_layer.x == pytest.approx(170.0)
    assert second_layer.y == pytest.approx(120.0 + 6 * 250.0)


def test_general_grid_ignores_score() -> None:
    region = _general_region()
    counters = PlacementCounters(1, 3)
    counters.advance(3, 4)

    low = compute_position(region, 1, counters, CardSettings(), LAYOUT)
    high = compute_position(region, 3, counters, CardSettings(), LAYOUT)

    assert low == high == Position(170.0, 1120.0)


def test_clamp_keeps_card_inside_margins() -> None:
    region = _scored_region()

    clamped = clamp_to_region(region, -500.0, 5000.0, SMALL_CARDS, 10.0)

    assert clamped == Position(110.0, 1490.0)


def test_clamp_rejects_region_smaller_than_card() -> None:
    tiny = _scored_region(width=100.0, height=100.0)

    assert clamp_to_region(tiny, 50.0, 50.0, SMALL_CARDS, 10.0) is None


def test_anchor_stays_in_bounds_for_every_counter_state(gateway) -> None:
    engine = PackingEngine(gateway, SMALL_CARDS, LAYOUT)
    for region in (_scored_region(), _general_region()):
        for filled in range(0, 60, 3):
            for score in (1, 2, 3):
                counters = PlacementCounters(1, 3, start=filled)
                anchor = engine.anchor_for(region, score, counters)
                assert region.left + SMALL_CARDS.width / 2 <= anchor.x <= region.right - SMALL_CARDS.width / 2
                assert region.top + SMALL_CARDS.height / 2 <= anchor.y <= region.bottom - SMALL_CARDS.height / 2


def test_anchor_raises_when_region_cannot_hold_a_card() -> None:
    engine = PackingEngine(None, SMALL_CARDS, LAYOUT)  # type: ignore[arg-type]

    with pytest.raises(PlacementOutOfBoundsError):
        engine.anchor_for(_scored_region(width=100.0, height=100.0), 3, PlacementCounters(1, 3))
