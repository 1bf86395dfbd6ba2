"""Place design points as cards inside regions."""
from __future__ import annotations

import logging
from typing import List

from boardflow.board import BoardGateway
from boardflow.config import CardSettings, LayoutSettings
from boardflow.errors import PlacementOutOfBoundsError
from boardflow.models import Card, Link, LinkStyle, PlacementCounters, PlacementResult, Position, Region
from boardflow.telemetry import emit_placement_event

from .chaining import color_for, darken_color, rows_consumed, split_content
from .strategies import clamp_to_region, compute_position

LOGGER = logging.getLogger(__name__)


class PackingEngine:
    """Compute card positions and create the resulting card runs."""

    def __init__(
        self,
        gateway: BoardGateway,
        cards: CardSettings | None = None,
        layout: LayoutSettings | None = None,
    ) -> None:
        self.gateway = gateway
        self.cards = cards or CardSettings()
        self.layout = layout or LayoutSettings()
        self.link_style = LinkStyle(stroke_color=self.cards.link_color, stroke_width=1.0, dashed=True)

    def anchor_for(self, region: Region, score: int, counters: PlacementCounters) -> Position:
        """Return the clamped position of the first card or raise when it cannot fit."""

        raw = compute_position(region, score, counters, self.cards, self.layout)
        anchor = clamp_to_region(region, raw.x, raw.y, self.cards, self.layout.bounds_margin)
        if anchor is None:
            raise PlacementOutOfBoundsError(
                f"No position for a {self.cards.width:g}x{self.cards.height:g} card inside region {region.title}"
            )
        return anchor

    def chunks_for(self, text: str) -> List[str]:
        return split_content(text, self.cards.char_limit, self.cards.split_threshold)

    async def place(
        self,
        region: Region,
        text: str,
        score: int,
        mode: str,
        counters: PlacementCounters,
        *,
        session_id: str | None = None,
    ) -> PlacementResult:
        """Create the card run for ``text`` and report how many rows it consumed.

        The caller advances ``counters`` by ``rows_consumed``; this method never
        mutates them.
        """

        chunks = self.chunks_for(text)
        if not chunks:
            LOGGER.warning("Skipping empty point for region %s", region.title)
            return PlacementResult()

        anchor = self.anchor_for(region, score, counters)
        base_color = color_for(self.cards.palettes, mode, score, counters.max_score)

        created: List[Card] = []
        links: List[Link] = []
        for index, chunk in enumerate(chunks):
            position = clamp_to_region(
                region,
                anchor.x + index * self.cards.chain_horizontal_offset,
                anchor.y + index * self.cards.chain_vertical_offset,
                self.cards,
                self.layout.bounds_margin,
            )
            if position is None:
                LOGGER.warning("Chunk %s of point does not fit in region %s", index, region.title)
                continue

            card = await self.gateway.create_card(
                chunk,
                position.x,
                position.y,
                self.cards.width,
                darken_color(base_color, index),
            )
            if card is None:
                LOGGER.warning("Card creation failed for chunk %s in region %s", index, region.title)
                continue

            if await self.gateway.add_to_region(region.id, card.id):
                card.parent_id = region.id
            if created:
                link = await self.gateway.create_link(created[-1].id, card.id, self.link_style)
                if link is not None:
                    links.append(link)
            created.append(card)

        rows = (
            rows_consumed(len(chunks), self.cards.height, self.cards.spacing, self.cards.chain_vertical_offset)
            if created
            else 0
        )
        emit_placement_event(
            "placement.complete" if created else "placement.failed",
            region=region.title,
            score=score,
            cards=len(created),
            rows_consumed=rows,
            position=(anchor.x, anchor.y),
            session_id=session_id,
            reason=None if created else "card_creation_failed",
        )
        return PlacementResult(cards=created, links=links, position=anchor, rows_consumed=rows)


__all__ = ["PackingEngine"]
