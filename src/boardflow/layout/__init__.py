"""Deterministic card packing inside board regions."""

from boardflow.models import LayoutStrategy

from .chaining import color_for, darken_color, relevance_bucket, rows_consumed, split_content
from .engine import PackingEngine
from .strategies import (
    clamp_to_region,
    compute_position,
    counter_bucket,
    general_grid_dimensions,
    general_grid_position,
    score_sectioned_position,
)

__all__ = [
    "LayoutStrategy",
    "PackingEngine",
    "clamp_to_region",
    "color_for",
    "compute_position",
    "counter_bucket",
    "darken_color",
    "general_grid_dimensions",
    "general_grid_position",
    "relevance_bucket",
    "rows_consumed",
    "score_sectioned_position",
    "split_content",
]
