from __future__ import annotations

import asyncio
import json

from boardflow.cache import TTLCache
from boardflow.config import RelevanceSettings
from boardflow.llm import MockCompletionProvider
from boardflow.models import NOT_RELEVANT, RELEVANT
from boardflow.relevance import RelevanceService, parse_score

from conftest import make_client

CORPUS = ["Navigation uses a bottom tab bar", "Cards show a preview of the latest message"]


def _service(responder, **settings) -> tuple[RelevanceService, MockCompletionProvider]:
    provider = MockCompletionProvider(responder=responder)
    return RelevanceService(provider, make_client("completion"), RelevanceSettings(**settings)), provider


def test_empty_corpus_is_relevant_without_calling_service() -> None:
    service, provider = _service(lambda system, user: "1")

    result = asyncio.run(service.evaluate("Add a dark theme", []))

    assert result.score == 3
    assert result.category == RELEVANT
    assert provider.calls == []


def test_blank_corpus_entries_count_as_empty() -> None:
    service, provider = _service(lambda system, user: "1")

    result = asyncio.run(service.evaluate("Add a dark theme", ["", "   "]))

    assert result.category == RELEVANT
    assert provider.calls == []


def test_score_and_category_follow_threshold() -> None:
    async def runner() -> None:
        service, _ = _service(lambda system, user: "Score: 2")
        medium = await service.evaluate("Tabs should show badges", CORPUS)
        assert (medium.score, medium.category) == (2, RELEVANT)

        service, _ = _service(lambda system, user: "1")
        low = await service.evaluate("Lunch options nearby", CORPUS)
        assert (low.score, low.category) == (1, NOT_RELEVANT)
        assert not low.is_relevant

    asyncio.run(runner())


def test_out_of_range_scores_are_clamped() -> None:
    async def runner() -> None:
        service, _ = _service(lambda system, user: "7")
        assert (await service.evaluate("point a", CORPUS)).score == 3

        service, _ = _service(lambda system, user: "0")
        assert (await service.evaluate("point b", CORPUS)).score == 1

    asyncio.run(runner())


def test_unparseable_response_uses_threshold() -> None:
    service, _ = _service(lambda system, user: "very relevant indeed")

    result = asyncio.run(service.evaluate("Tabs should show badges", CORPUS))

    assert result.score == 2
    assert result.category == RELEVANT


def test_cached_score_skips_service_and_rederives_category() -> None:
    async def runner() -> None:
        service, provider = _service(lambda system, user: "2")
        first = await service.evaluate("Tabs should show badges", CORPUS)
        second = await service.evaluate("Tabs should show badges", CORPUS, threshold=3)

        assert len(provider.calls) == 1
        assert first.category == RELEVANT
        assert second.score == 2
        assert second.category == NOT_RELEVANT

    asyncio.run(runner())


def test_corpus_change_misses_cache() -> None:
    async def runner() -> None:
        service, provider = _service(lambda system, user: "2")
        await service.evaluate("Tabs should show badges", CORPUS)
        await service.evaluate("Tabs should show badges", CORPUS + ["Settings live in a drawer"])
        assert len(provider.calls) == 2

    asyncio.run(runner())


def test_session_cache_is_used_when_given() -> None:
    async def runner() -> None:
        service, provider = _service(lambda system, user: "2")
        session_cache: TTLCache[int] = TTLCache(1800.0)
        await service.evaluate("Tabs should show badges", CORPUS, cache=session_cache)
        assert len(session_cache) == 1
        assert len(service.cache) == 0
        await service.evaluate("Tabs should show badges", CORPUS, cache=session_cache)
        assert len(provider.calls) == 1

    asyncio.run(runner())


def test_service_failure_fails_open_to_maximum() -> None:
    def broken(system: str, user: str) -> str:
        raise RuntimeError("completion service down")

    service, provider = _service(broken)

    result = asyncio.run(service.evaluate("Tabs should show badges", CORPUS))

    assert result.score == 3
    assert result.category == RELEVANT
    assert len(provider.calls) == 3
    assert len(service.cache) == 0


def test_malformed_service_payload_fails_open() -> None:
    def garbled(system: str, user: str) -> str:
        return json.loads("<html>")

    service, provider = _service(garbled)

    result = asyncio.run(service.evaluate("Tabs should show badges", CORPUS))

    assert (result.score, result.category) == (3, RELEVANT)
    assert len(provider.calls) == 3


def test_succeeds_after_transient_failures() -> None:
    state = {"calls": 0}

    def flaky(system: str, user: str) -> str:
        state["calls"] += 1
        if state["calls"] < 3:
            raise RuntimeError("rate limited")
        return "1"

    service, _ = _service(flaky)

    result = asyncio.run(service.evaluate("Lunch options nearby", CORPUS))

    assert result.score == 1
    assert result.category == NOT_RELEVANT


def test_prompts_embed_corpus_point_and_scale() -> None:
    service, provider = _service(lambda system, user: "3")

    asyncio.run(service.evaluate("Tabs should show badges", CORPUS))

    system, user = provider.calls[0]
    assert "1-3" in system
    assert user.startswith("Design Decisions:\nNavigation uses a bottom tab bar\n")
    assert "Point to evaluate:\nTabs should show badges" in user


def test_parse_score_takes_first_integer() -> None:
    assert parse_score("2 out of 3", 9) == 2
    assert parse_score("", 9) == 9
