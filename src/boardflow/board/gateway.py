"""Rate limited access to the board platform with per-operation fallbacks."""

from __future__ import annotations

import logging
from typing import List

from boardflow.board.base import CARD_ITEM, BoardPlatform
from boardflow.models import Card, LayoutStrategy, Link, LinkStyle, Region
from boardflow.resilience import RateLimitedClient

LOGGER = logging.getLogger(__name__)


class BoardGateway:
    """Route every board call through one :class:`RateLimitedClient`.

    Failures that survive the retry policy degrade to ``None`` (or an empty
    list for queries) so that a batch can continue with the next item.
    """

    def __init__(self, platform: BoardPlatform, client: RateLimitedClient) -> None:
        self.platform = platform
        self.client = client

    async def find_region_by_title(self, title: str) -> Region | None:
        return await self.client.call(
            "find_region_by_title",
            lambda: self.platform.find_region_by_title(title),
            None,
        )

    async def create_region(
        self,
        title: str,
        x: float,
        y: float,
        width: float,
        height: float,
        strategy: LayoutStrategy,
    ) -> Region | None:
        return await self.client.call(
            "create_region",
            lambda: self.platform.create_region(title, x, y, width, height, strategy),
            None,
        )

    async def get_items(self, item_type: str = CARD_ITEM, *, parent_id: str | None = None) -> List[Card]:
        return await self.client.call(
            "get_items",
            lambda: self.platform.get_items(item_type, parent_id=parent_id),
            [],
        )

    async def create_card(self, content: str, x: float, y: float, width: float, color: str) -> Card | None:
        return await self.client.call(
            "create_card",
            lambda: self.platform.create_card(content, x, y, width, color),
            None,
        )

    async def create_link(self, from_id: str, to_id: str, style: LinkStyle) -> Link | None:
        return await self.client.call(
            "create_link",
            lambda: self.platform.create_link(from_id, to_id, style),
            None,
        )

    async def add_to_region(self, region_id: str, item_id: str) -> bool:
        async def _attach() -> bool:
            await self.platform.add_to_region(region_id, item_id)
            return True

        return await self.client.call("add_to_region", _attach, False)


__all__ = ["BoardGateway"]
