"""Miro REST v2 implementation of :class:`BoardPlatform`."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from boardflow.board.base import CARD_ITEM, BoardPlatform
from boardflow.config import BoardSettings
from boardflow.errors import BoardUnavailableError
from boardflow.models import Card, LayoutStrategy, Link, LinkStyle, Region

LOGGER = logging.getLogger(__name__)

# Sticky notes only accept named fill colors.
STICKY_COLORS: dict[str, str] = {
    "gray": "#f5f6f8",
    "light_yellow": "#fff9b1",
    "yellow": "#f5d128",
    "orange": "#ff9d48",
    "light_green": "#d5f692",
    "green": "#c9df56",
    "dark_green": "#93d275",
    "cyan": "#67c6c0",
    "light_pink": "#ffcee0",
    "pink": "#ea94bb",
    "violet": "#be88c7",
    "red": "#f24726",
    "light_blue": "#a6ccf5",
    "blue": "#6cd8fa",
    "dark_blue": "#9ea9ff",
    "black": "#1a1a1a",
}

_PAGE_LIMIT = 50


def _hex_to_rgb(value: str) -> tuple[int, int, int] | None:
    value = value.strip().lstrip("#")
    if len(value) != 6:
        return None
    try:
        return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
    except ValueError:
        return None


_STICKY_RGB: dict[str, tuple[int, int, int]] = {}
for _name, _value in STICKY_COLORS.items():
    _rgb = _hex_to_rgb(_value)
    if _rgb is not None:
        _STICKY_RGB[_name] = _rgb


def nearest_sticky_color(color: str) -> str:
    """Map ``color`` (a hex string or palette name) to a sticky note color name."""

    if color in STICKY_COLORS:
        return color
    rgb = _hex_to_rgb(color)
    if rgb is None:
        return "light_yellow"

    def _distance(item: tuple[str, tuple[int, int, int]]) -> int:
        return sum((a - b) ** 2 for a, b in zip(rgb, item[1]))

    return min(_STICKY_RGB.items(), key=_distance)[0]


class MiroBoard(BoardPlatform):
    """Talk to one Miro board through the REST API."""

    name = "miro"

    def __init__(
        self,
        settings: BoardSettings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not settings.board_id:
            raise BoardUnavailableError("MIRO_BOARD_ID is not configured")
        if client is None and not settings.access_token:
            raise BoardUnavailableError("MIRO_ACCESS_TOKEN is not configured")
        self.board_id = settings.board_id
        self._client = client or httpx.AsyncClient(
            base_url=settings.api_url,
            headers={
                "Authorization": f"Bearer {settings.access_token}",
                "Accept": "application/json",
            },
            timeout=settings.timeout,
        )
        self._regions: Dict[str, Region] = {}
        self._cards: Dict[str, Card] = {}

    @property
    def _board_path(self) -> str:
        return f"/boards/{self.board_id}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, f"{self._board_path}{path}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as error:
            raise BoardUnavailableError(f"Miro {method} {path} failed: {error}", cause=error) from error
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as error:
            raise BoardUnavailableError(f"Miro {method} {path} returned a non-JSON body", cause=error) from error

    async def _iter_items(self, params: dict[str, Any]) -> List[dict[str, Any]]:
        items: List[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            query = dict(params, limit=_PAGE_LIMIT)
            if cursor:
                query["cursor"] = cursor
            payload = await self._request("GET", "/items", params=query)
            items.extend(payload.get("data", []))
            cursor = payload.get("cursor")
            if not cursor:
                return items

    def _region_from_payload(self, payload: dict[str, Any], strategy: LayoutStrategy) -> Region:
        position = payload.get("position") or {}
        geometry = payload.get("geometry") or {}
        region = Region(
            id=str(payload["id"]),
            title=(payload.get("data") or {}).get("title", ""),
            x=float(position.get("x", 0.0)),
            y=float(position.get("y", 0.0)),
            width=float(geometry.get("width", 0.0)),
            height=float(geometry.get("height", 0.0)),
            strategy=strategy,
        )
        self._regions[region.id] = region
        return region

    async def find_region_by_title(self, title: str) -> Region | None:
        for payload in await self._iter_items({"type": "frame"}):
            if (payload.get("data") or {}).get("title") == title:
                return self._region_from_payload(payload, LayoutStrategy.SCORE_SECTIONED)
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
        body = {
            "data": {"title": title, "format": "custom", "type": "freeform"},
            "style": {"fillColor": "#ffffff"},
            "position": {"x": x, "y": y, "origin": "center"},
            "geometry": {"width": width, "height": height},
        }
        payload = await self._request("POST", "/frames", json=body)
        return self._region_from_payload(payload, strategy)

    def _card_from_payload(self, payload: dict[str, Any]) -> Card:
        position = payload.get("position") or {}
        geometry = payload.get("geometry") or {}
        style = payload.get("style") or {}
        parent_id = (payload.get("parent") or {}).get("id")
        x = float(position.get("x", 0.0))
        y = float(position.get("y", 0.0))
        parent = self._regions.get(str(parent_id)) if parent_id else None
        if parent is not None:
            # Children are positioned relative to the parent's top-left corner.
            x += parent.left
            y += parent.top
        return Card(
            id=str(payload["id"]),
            content=(payload.get("data") or {}).get("content", ""),
            x=x,
            y=y,
            width=float(geometry.get("width", 0.0)),
            color=style.get("fillColor", ""),
            parent_id=str(parent_id) if parent_id else None,
        )

    async def get_items(self, item_type: str = CARD_ITEM, *, parent_id: str | None = None) -> List[Card]:
        if item_type != CARD_ITEM:
            return []
        params: dict[str, Any] = {"type": "sticky_note"}
        if parent_id:
            params["parent_item_id"] = parent_id
        cards = [self._card_from_payload(payload) for payload in await self._iter_items(params)]
        if parent_id:
            cards = [card for card in cards if card.parent_id == parent_id]
        return cards

    async def create_card(self, content: str, x: float, y: float, width: float, color: str) -> Card:
        body = {
            "data": {"content": content, "shape": "rectangle"},
            "style": {"fillColor": nearest_sticky_color(color)},
            "position": {"x": x, "y": y, "origin": "center"},
            "geometry": {"width": width},
        }
        payload = await self._request("POST", "/sticky_notes", json=body)
        card = self._card_from_payload(payload)
        card.color = color
        self._cards[card.id] = card
        return card

    async def create_link(self, from_id: str, to_id: str, style: LinkStyle) -> Link:
        link = Link(id="", from_id=from_id, to_id=to_id, style=style)
        body = {
            "startItem": {
                "id": from_id,
                "position": {"x": f"{link.start_anchor[0]:.0%}", "y": f"{link.start_anchor[1]:.0%}"},
            },
            "endItem": {
                "id": to_id,
                "position": {"x": f"{link.end_anchor[0]:.0%}", "y": f"{link.end_anchor[1]:.0%}"},
            },
            "shape": "curved",
            "style": {
                "strokeColor": style.stroke_color,
                "strokeWidth": f"{style.stroke_width:g}",
                "strokeStyle": "dashed" if style.dashed else "normal",
            },
        }
        payload = await self._request("POST", "/connectors", json=body)
        link.id = str(payload.get("id", ""))
        return link

    async def add_to_region(self, region_id: str, item_id: str) -> None:
        body: dict[str, Any] = {"parent": {"id": region_id}}
        region = self._regions.get(region_id)
        card = self._cards.get(item_id)
        if region is not None and card is not None:
            body["position"] = {"x": card.x - region.left, "y": card.y - region.top}
        await self._request("PATCH", f"/sticky_notes/{item_id}", json=body)
        if card is not None:
            card.parent_id = region_id

    async def ping(self) -> None:
        await self._request("GET", "")

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["MiroBoard", "STICKY_COLORS", "nearest_sticky_color"]
