"""Score design points against the reference corpus with a language model."""
from __future__ import annotations

import logging
import math
import re
import time
from typing import Sequence

from boardflow.cache import TTLCache, digest_key
from boardflow.config import RelevanceSettings
from boardflow.llm import CompletionOptions, CompletionProvider
from boardflow.models import NOT_RELEVANT, RELEVANT, RelevanceResult
from boardflow.resilience import RateLimitedClient
from boardflow.telemetry import emit_classification_event

LOGGER = logging.getLogger(__name__)

_SCORE_RE = re.compile(r"\d+")


def clamp_score(score: int, min_score: int, max_score: int) -> int:
    return max(min_score, min(max_score, score))


def category_for(score: int, threshold: int) -> str:
    return RELEVANT if score >= threshold else NOT_RELEVANT


def parse_score(response: str, default: int) -> int:
    """Return the first integer found in ``response`` or ``default``."""

    match = _SCORE_RE.search(response or "")
    if match is None:
        return default
    return int(match.group(0))


class RelevanceService:
    """Classify points as relevant or not relevant to the current design decisions."""

    def __init__(
        self,
        provider: CompletionProvider,
        client: RateLimitedClient,
        settings: RelevanceSettings | None = None,
        *,
        cache: TTLCache[int] | None = None,
    ) -> None:
        self.provider = provider
        self.client = client
        self.settings = settings or RelevanceSettings()
        self.cache: TTLCache[int] = cache if cache is not None else TTLCache(self.settings.cache_ttl)

    def system_prompt(self) -> str:
        low = self.settings.min_score
        high = self.settings.max_score
        return (
            "You are an AI assistant that evaluates how relevant a design point is to current design decisions.\n\n"
            "Your task is to critically evaluate whether a given point directly addresses or builds upon "
            "the existing design decisions.\n\n"
            f"Scoring criteria ({high}-point scale):\n"
            f"- {high}: HIGHLY RELEVANT - Directly addresses or builds upon specific design decisions. "
            "Clear and direct connection to existing work.\n"
            f"- {math.ceil(high / 2)}: SOMEWHAT RELEVANT - Related to the general theme but connection "
            "to specific design decisions is weaker.\n"
            f"- {low}: NOT RELEVANT - Off-topic or introduces entirely new concepts unrelated to current "
            "design decisions.\n\n"
            f"Respond with ONLY a single numerical score ({low}-{high}) and nothing else."
        )

    def user_prompt(self, point: str, corpus: Sequence[str]) -> str:
        low = self.settings.min_score
        high = self.settings.max_score
        context = "\n".join(corpus)
        return (
            f"Design Decisions:\n{context}\n\n"
            f"Point to evaluate:\n{point}\n\n"
            f"Rate this point's relevance to the design decisions above on a scale of {low}-{high} "
            "(higher = more relevant).\n"
            "Remember to be critical and rigorous in your assessment. Only assign the highest score "
            f"({high}) if there's a very clear, direct connection."
        )

    async def evaluate(
        self,
        point: str,
        corpus: Sequence[str],
        threshold: int | None = None,
        *,
        cache: TTLCache[int] | None = None,
        session_id: str | None = None,
    ) -> RelevanceResult:
        """Return the clamped score and derived category for ``point``.

        An empty corpus short-circuits to the maximum score. Any failure of the
        completion service fails open to the maximum score as well.
        """

        threshold = self.settings.threshold if threshold is None else threshold
        max_score = self.settings.max_score
        entries = [entry for entry in corpus if entry and entry.strip()]
        if not entries:
            return RelevanceResult(score=max_score, category=RELEVANT)

        cache = cache if cache is not None else self.cache
        key = digest_key(point, entries)
        cached = cache.get(key)
        if cached is not None:
            result = RelevanceResult(score=cached, category=category_for(cached, threshold))
            emit_classification_event(
                point=point,
                score=result.score,
                category=result.category,
                corpus_size=len(entries),
                cached=True,
                session_id=session_id,
            )
            return result

        started = time.perf_counter()
        options = CompletionOptions(
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )
        system_prompt = self.system_prompt()
        user_prompt = self.user_prompt(point, entries)
        response = await self.client.call(
            "relevance.complete",
            lambda: self.provider.complete(system_prompt, user_prompt, options),
            None,
        )
        duration_ms = (time.perf_counter() - started) * 1000.0

        if response is None:
            LOGGER.warning("Relevance evaluation failed; treating point as relevant")
            emit_classification_event(
                point=point,
                score=max_score,
                category=RELEVANT,
                corpus_size=len(entries),
                cached=False,
                fallback=True,
                session_id=session_id,
                duration_ms=duration_ms,
            )
            return RelevanceResult(score=max_score, category=RELEVANT)

        raw_score = parse_score(response, self.settings.threshold)
        score = clamp_score(raw_score, self.settings.min_score, max_score)
        cache.set(key, score)
        result = RelevanceResult(score=score, category=category_for(score, threshold))
        emit_classification_event(
            point=point,
            score=score,
            category=result.category,
            corpus_size=len(entries),
            cached=False,
            session_id=session_id,
            duration_ms=duration_ms,
        )
        return result


__all__ = ["RelevanceService", "category_for", "clamp_score", "parse_score"]
