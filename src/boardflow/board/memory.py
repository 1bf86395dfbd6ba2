"""In-memory board used for offline runs and tests."""

from __future__ import annotations

import itertools
import logging
from typing import Dict, List

from boardflow.board.base import CARD_ITEM, REGION_ITEM, BoardPlatform
from boardflow.errors import BoardUnavailableError
from boardflow.models import Card, LayoutStrategy, Link, LinkStyle, Region

LOGGER = logging.getLogger(__name__)


class InMemoryBoard(BoardPlatform):
    """Keep regions, cards and links in process memory."""

    name = "memory"

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.regions: Dict[str, Region] = {}
        self.cards: Dict[str, Card] = {}
        self.links: Dict[str, Link] = {}

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    async def find_region_by_title(self, title: str) -> Region | None:
        for region in self.regions.values():
            if region.title == title:
                return region
        return None

    async def create_region(
        self,
        title: str,
        x: float,
        y: float,
        width: float,
        height: float,
        strategy: LayoutStrategy = LayoutStrategy.SCORE_SECTIONED,
    ) -> Region:
        region = Region(
            id=self._next_id(REGION_ITEM),
            title=title,
            x=x,
            y=y,
            width=width,
            height=height,
            strategy=strategy,
        )
        self.regions[region.id] = region
        LOGGER.debug("Created region %s (%s)", region.id, title)
        return region

    async def get_items(self, item_type: str = CARD_ITEM, *, parent_id: str | None = None) -> List[Card]:
        if item_type != CARD_ITEM:
            return []
        return [
            card
            for card in self.cards.values()
            if parent_id is None or card.parent_id == parent_id
        ]

    async def create_card(self, content: str, x: float, y: float, width: float, color: str) -> Card:
        card = Card(id=self._next_id(CARD_ITEM), content=content, x=x, y=y, width=width, color=color)
        self.cards[card.id] = card
        return card

    async def create_link(self, from_id: str, to_id: str, style: LinkStyle) -> Link:
        if from_id not in self.cards or to_id not in self.cards:
            raise BoardUnavailableError(f"Cannot link unknown cards {from_id} -> {to_id}")
        link = Link(id=self._next_id("link"), from_id=from_id, to_id=to_id, style=style)
        self.links[link.id] = link
        return link

    async def add_to_region(self, region_id: str, item_id: str) -> None:
        if region_id not in self.regions:
            raise BoardUnavailableError(f"Unknown region {region_id}")
        card = self.cards.get(item_id)
        if card is None:
            raise BoardUnavailableError(f"Unknown card {item_id}")
        card.parent_id = region_id

    def cards_in(self, region_id: str) -> List[Card]:
        return [card for card in self.cards.values() if card.parent_id == region_id]


__all__ = ["InMemoryBoard"]
