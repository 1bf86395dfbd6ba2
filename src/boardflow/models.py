"""Data structures shared across capture, classification and placement."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

RELEVANT = "relevant"
NOT_RELEVANT = "not-relevant"
DEFAULT_CATEGORY = "General"


class LayoutStrategy(str, Enum):
    """Packing algorithm attached to a region when it is created."""

    SCORE_SECTIONED = "score_sectioned"
    GENERAL_GRID = "general_grid"


@dataclass(slots=True, frozen=True)
class ContentChunk:
    """One capture window, either encoded audio or a slice of typed text."""

    sequence: int
    captured_at: float
    data: bytes | None = None
    text: str | None = None
    mime_type: str | None = None

    @property
    def is_audio(self) -> bool:
        return self.data is not None

    @property
    def size(self) -> int:
        if self.data is not None:
            return len(self.data)
        return len(self.text or "")


@dataclass(slots=True, frozen=True)
class DesignPoint:
    text: str
    category: str = DEFAULT_CATEGORY
    source_sequence: int | None = None

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass(slots=True, frozen=True)
class RelevanceResult:
    score: int
    category: str

    @property
    def is_relevant(self) -> bool:
        return self.category == RELEVANT


@dataclass(slots=True, frozen=True)
class Position:
    x: float
    y: float


@dataclass(slots=True)
class Region:
    """Rectangular frame on the board; ``x``/``y`` describe its center."""

    id: str
    title: str
    x: float
    y: float
    width: float
    height: float
    strategy: LayoutStrategy = LayoutStrategy.SCORE_SECTIONED

    @property
    def left(self) -> float:
        return self.x - self.width / 2

    @property
    def right(self) -> float:
        return self.x + self.width / 2

    @property
    def top(self) -> float:
        return self.y - self.height / 2

    @property
    def bottom(self) -> float:
        return self.y + self.height / 2

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


@dataclass(slots=True)
class Card:
    id: str
    content: str
    x: float
    y: float
    width: float
    color: str
    parent_id: str | None = None

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)


@dataclass(slots=True, frozen=True)
class LinkStyle:
    stroke_color: str = "#4262ff"
    stroke_width: float = 1.0
    dashed: bool = True


@dataclass(slots=True)
class Link:
    id: str
    from_id: str
    to_id: str
    style: LinkStyle = field(default_factory=LinkStyle)
    start_anchor: tuple[float, float] = (0.5, 1.0)
    end_anchor: tuple[float, float] = (0.5, 0.0)


class PlacementCounters:
    """Per-score count of row slots already consumed inside one region."""

    def __init__(self, min_score: int, max_score: int, start: int = 0) -> None:
        if min_score > max_score:
            raise ValueError("min_score must not exceed max_score")
        self.min_score = min_score
        self.max_score = max_score
        self._slots = {score: max(0, start) for score in range(min_score, max_score + 1)}

    def _key(self, score: int) -> int:
        return min(self.max_score, max(self.min_score, score))

    def get(self, score: int) -> int:
        return self._slots[self._key(score)]

    def advance(self, score: int, rows: int) -> int:
        if rows < 0:
            raise ValueError("rows must be non-negative")
        key = self._key(score)
        self._slots[key] += rows
        return self._slots[key]

    def snapshot(self) -> dict[int, int]:
        return dict(self._slots)


@dataclass(slots=True)
class PlacementResult:
    cards: List[Card] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    position: Position | None = None
    rows_consumed: int = 0

    @property
    def placed(self) -> bool:
        return bool(self.cards)


@dataclass(slots=True)
class BatchReport:
    """Aggregate counts for a batch of placement attempts."""

    attempted: int = 0
    placed: int = 0
    duplicates: int = 0
    failed: int = 0
    cards_created: int = 0
    cancelled: bool = False

    def merge(self, other: "BatchReport") -> None:
        self.attempted += other.attempted
        self.placed += other.placed
        self.duplicates += other.duplicates
        self.failed += other.failed
        self.cards_created += other.cards_created
        self.cancelled = self.cancelled or other.cancelled


@dataclass(slots=True)
class CaptureResult:
    text: str = ""
    chunks: int = 0
    failed_chunks: int = 0
    no_content: bool = False
    cancelled: bool = False


__all__ = [
    "BatchReport",
    "CaptureResult",
    "Card",
    "ContentChunk",
    "DEFAULT_CATEGORY",
    "DesignPoint",
    "LayoutStrategy",
    "Link",
    "LinkStyle",
    "NOT_RELEVANT",
    "PlacementCounters",
    "PlacementResult",
    "Position",
    "RELEVANT",
    "Region",
    "RelevanceResult",
]
