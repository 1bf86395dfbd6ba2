"""Find or create board regions and inspect what they already contain."""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Sequence

from boardflow.board import CARD_ITEM, BoardGateway
from boardflow.cache import TTLCache
from boardflow.config import RegionSettings, RelevanceSettings
from boardflow.errors import RegionUnavailableError
from boardflow.models import Card, DesignPoint, LayoutStrategy, PlacementCounters, Region
from boardflow.text import comparison_key, strip_markup

LOGGER = logging.getLogger(__name__)

DECISION_REGION = "Thinking-Dialogue"
RESPONSE_REGION = "Analysis-Response"

_MODE_REGIONS = {
    "decision": DECISION_REGION,
    "response": RESPONSE_REGION,
}


def frame_name_for_mode(mode: str) -> str:
    try:
        return _MODE_REGIONS[mode]
    except KeyError as error:
        raise ValueError(f"Unknown placement mode: {mode}") from error


class RegionManager:
    """Region lookup, membership queries, deduplication and the reference corpus."""

    def __init__(
        self,
        gateway: BoardGateway,
        settings: RegionSettings | None = None,
        relevance: RelevanceSettings | None = None,
        *,
        corpus_cache: TTLCache[List[str]] | None = None,
    ) -> None:
        self.gateway = gateway
        self.settings = settings or RegionSettings()
        self.relevance = relevance or RelevanceSettings()
        self.corpus_cache: TTLCache[List[str]] = (
            corpus_cache if corpus_cache is not None else TTLCache(self.settings.corpus_ttl)
        )
        self._regions: dict[str, Region] = {}

    def strategy_for(self, name: str) -> LayoutStrategy:
        if name in self.settings.general_names:
            return LayoutStrategy.GENERAL_GRID
        return LayoutStrategy.SCORE_SECTIONED

    async def ensure_region(self, name: str, strategy: LayoutStrategy | None = None) -> Region:
        """Return the region titled ``name``, creating it with default geometry when absent."""

        strategy = strategy or self.strategy_for(name)
        region = self._regions.get(name)
        if region is None:
            region = await self.gateway.find_region_by_title(name)
        if region is None:
            LOGGER.info("Creating region %s", name)
            region = await self.gateway.create_region(
                name,
                self.settings.initial_x,
                self.settings.initial_y,
                self.settings.width,
                self.settings.height,
                strategy,
            )
        if region is None:
            raise RegionUnavailableError(f"Could not ensure region exists: {name}")
        region.strategy = strategy
        self._regions[name] = region
        return region

    async def get_contents(self, region: Region, item_types: Iterable[str] = (CARD_ITEM,)) -> List[Card]:
        items: List[Card] = []
        for item_type in item_types:
            items.extend(await self.gateway.get_items(item_type, parent_id=region.id))
        return items

    async def initial_counters(self, region: Region) -> PlacementCounters:
        """Counters seeded so new cards start after everything already in ``region``."""

        existing = await self.get_contents(region)
        return PlacementCounters(self.relevance.min_score, self.relevance.max_score, start=len(existing))

    def filter_duplicates(
        self,
        points: Sequence[DesignPoint],
        existing: Iterable[Card],
        splitter: Callable[[str], List[str]] | None = None,
    ) -> tuple[List[DesignPoint], List[DesignPoint]]:
        """Split ``points`` into ``(new, duplicates)`` against ``existing`` cards.

        A point is a duplicate when its normalised text is already present, when
        every chunk it would be split into is already present, or when an earlier
        point in the same batch has the same text.
        """

        seen = {comparison_key(card.content) for card in existing}
        seen.discard("")
        fresh: List[DesignPoint] = []
        duplicates: List[DesignPoint] = []
        for point in points:
            key = comparison_key(point.text)
            chunk_keys = [comparison_key(chunk) for chunk in splitter(point.text)] if splitter else []
            if not key:
                duplicates.append(point)
                continue
            if key in seen or (len(chunk_keys) > 1 and all(chunk in seen for chunk in chunk_keys)):
                duplicates.append(point)
                continue
            seen.add(key)
            fresh.append(point)
        return fresh, duplicates

    async def reference_corpus(self, name: str | None = None) -> List[str]:
        """Card texts of the corpus region, cached for ``corpus_ttl`` seconds."""

        name = name or self.settings.corpus_region
        cached = self.corpus_cache.get(name)
        if cached is not None:
            return list(cached)
        region = self._regions.get(name) or await self.gateway.find_region_by_title(name)
        entries: List[str] = []
        if region is not None:
            for card in await self.gateway.get_items(CARD_ITEM, parent_id=region.id):
                text = " ".join(strip_markup(card.content).split())
                if text:
                    entries.append(text)
        self.corpus_cache.set(name, entries)
        LOGGER.info("Loaded %s reference entries from %s", len(entries), name)
        return list(entries)


__all__ = [
    "DECISION_REGION",
    "RESPONSE_REGION",
    "RegionManager",
    "frame_name_for_mode",
]
