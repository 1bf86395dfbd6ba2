"""Abstract interface for the shared board platform."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from boardflow.models import Card, LayoutStrategy, Link, LinkStyle, Region

__all__ = ["BoardPlatform", "CARD_ITEM", "REGION_ITEM"]

CARD_ITEM = "card"
REGION_ITEM = "region"


class BoardPlatform(ABC):
    """Operations the placement engine needs from a canvas platform."""

    name = "board"

    @abstractmethod
    async def find_region_by_title(self, title: str) -> Region | None:
        """Return the region with ``title`` or ``None`` when absent."""

    @abstractmethod
    async def create_region(
        self,
        title: str,
        x: float,
        y: float,
        width: float,
        height: float,
        strategy: LayoutStrategy = LayoutStrategy.SCORE_SECTIONED,
    ) -> Region:
        """Create a region centered on ``(x, y)``."""

    @abstractmethod
    async def get_items(self, item_type: str = CARD_ITEM, *, parent_id: str | None = None) -> List[Card]:
        """List items of ``item_type``, optionally restricted to one parent region."""

    @abstractmethod
    async def create_card(self, content: str, x: float, y: float, width: float, color: str) -> Card:
        """Create a card centered on ``(x, y)``."""

    @abstractmethod
    async def create_link(self, from_id: str, to_id: str, style: LinkStyle) -> Link:
        """Connect two cards."""

    @abstractmethod
    async def add_to_region(self, region_id: str, item_id: str) -> None:
        """Record ``item_id`` as a member of ``region_id``."""

    async def ping(self) -> None:
        """Raise when the platform is unreachable."""

    async def close(self) -> None:
        """Release any network resources."""
