"""Helpers for splitting long points into chained runs of cards."""
from __future__ import annotations

import math
import re
from typing import List, Mapping

_WHITESPACE_RE = re.compile(r"\s")
_HEX_COLOR_RE = re.compile(r"^#([0-9a-fA-F]{6})$")

MAX_DARKEN_STEP = 20
DARKEN_PER_CARD = 5


def split_content(text: str, limit: int, threshold: float = 0.1) -> List[str]:
    """Split ``text`` into chunks of at most ``limit`` characters.

    Breaks at the last whitespace within ``limit`` when it lies beyond
    ``threshold * limit``; otherwise the text is force-broken at ``limit``.
    """

    if limit < 1:
        raise ValueError("limit must be positive")
    remaining = text.strip()
    chunks: List[str] = []
    while len(remaining) > limit:
        window = remaining[: limit + 1]
        split_at = -1
        for match in _WHITESPACE_RE.finditer(window):
            split_at = match.start()
        if split_at > limit * threshold:
            chunk = remaining[:split_at].strip()
            remaining = remaining[split_at:].strip()
        else:
            chunk = remaining[:limit].strip()
            remaining = remaining[limit:].strip()
        if chunk:
            chunks.append(chunk)
    if remaining:
        chunks.append(remaining)
    return chunks


def darken_color(color: str, index: int) -> str:
    """Return ``color`` darkened for the ``index``-th card of a run.

    Only ``#rrggbb`` colors are darkened; named colors are returned unchanged.
    """

    match = _HEX_COLOR_RE.match(color)
    if match is None or index <= 0:
        return color
    amount = min(index * DARKEN_PER_CARD, MAX_DARKEN_STEP)
    value = match.group(1)
    channels = [max(0, int(value[i : i + 2], 16) - amount) for i in (0, 2, 4)]
    return "#" + "".join(f"{channel:02x}" for channel in channels)


def rows_consumed(card_count: int, card_height: float, spacing: float, vertical_offset: float) -> int:
    """Number of layout rows a run of ``card_count`` chained cards occupies."""

    if card_count <= 0:
        return 0
    run_height = (card_count - 1) * vertical_offset + card_height
    return max(1, math.ceil(run_height / (card_height + spacing)))


def relevance_bucket(score: int, max_score: int) -> str:
    if score >= math.ceil(max_score * 0.75):
        return "high"
    if score >= math.ceil(max_score * 0.4):
        return "medium"
    return "low"


def color_for(palettes: Mapping[str, Mapping[str, str]], mode: str, score: int, max_score: int) -> str:
    palette = palettes.get(mode) or palettes.get("decision") or {}
    return palette.get(relevance_bucket(score, max_score), "#fff9b1")


__all__ = [
    "color_for",
    "darken_color",
    "relevance_bucket",
    "rows_consumed",
    "split_content",
]
