"""Shared fixtures wiring the pipeline to in-memory collaborators."""
from __future__ import annotations

from typing import List

import numpy as np
import pytest

from boardflow.board import BoardGateway, InMemoryBoard
from boardflow.config import CaptureSettings, CardSettings, RetrySettings, Settings
from boardflow.errors import BoardUnavailableError
from boardflow.llm import MockCompletionProvider, MockTranscriptionProvider
from boardflow.models import Card
from boardflow.pipeline import BoardPipeline
from boardflow.resilience import RateLimitedClient, RetryPolicy

NO_WAIT_POLICY = RetryPolicy(max_attempts=3, backoff_base=0.0, max_delay=0.0)


def make_client(name: str = "test") -> RateLimitedClient:
    return RateLimitedClient(NO_WAIT_POLICY, min_interval=0.0, name=name)


def sentence(topic: str, words: int = 20) -> str:
    """Return a deterministic sentence with exactly ``words`` words."""

    filler = ["the", "navigation", "panel", "should", "keep", "context", "visible", "while", "users", "switch"]
    body = [topic] + [filler[index % len(filler)] for index in range(words - 1)]
    return " ".join(body).capitalize() + "."


def tone(seconds: float, sample_rate: int = 8000, frequency: float = 220.0) -> np.ndarray:
    times = np.arange(int(seconds * sample_rate)) / sample_rate
    return (0.3 * np.sin(2 * np.pi * frequency * times)).astype(np.float32)


class FlakyBoard(InMemoryBoard):
    """In-memory board whose card creation fails a configurable number of times."""

    def __init__(self, card_failures: int = 0, region_failures: int = 0) -> None:
        super().__init__()
        self.card_failures = card_failures
        self.region_failures = region_failures
        self.card_attempts = 0

    async def create_card(self, content: str, x: float, y: float, width: float, color: str) -> Card:
        self.card_attempts += 1
        if self.card_failures:
            self.card_failures -= 1
            raise BoardUnavailableError("card service hiccup")
        return await super().create_card(content, x, y, width, color)

    async def find_region_by_title(self, title: str):
        if self.region_failures:
            raise BoardUnavailableError("frames endpoint down")
        return await super().find_region_by_title(title)

    async def create_region(self, *args, **kwargs):
        if self.region_failures:
            raise BoardUnavailableError("frames endpoint down")
        return await super().create_region(*args, **kwargs)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        retry=RetrySettings(min_interval=0.0, max_attempts=3, backoff_base=0.0, max_delay=0.0),
        cards=CardSettings(creation_delay=0.0),
        capture=CaptureSettings(chunk_seconds=0.5, sample_rate=8000, transcription_timeout=5.0),
    )


@pytest.fixture
def board() -> InMemoryBoard:
    return InMemoryBoard()


@pytest.fixture
def gateway(board: InMemoryBoard) -> BoardGateway:
    return BoardGateway(board, make_client("board"))


@pytest.fixture
def completion() -> MockCompletionProvider:
    return MockCompletionProvider()


@pytest.fixture
def transcriber() -> MockTranscriptionProvider:
    return MockTranscriptionProvider()


def build_pipeline(
    board: InMemoryBoard,
    settings: Settings,
    completion: MockCompletionProvider | None = None,
    transcriber: MockTranscriptionProvider | None = None,
) -> BoardPipeline:
    return BoardPipeline(
        gateway=BoardGateway(board, make_client("board")),
        completion=completion or MockCompletionProvider(),
        transcriber=transcriber or MockTranscriptionProvider(),
        settings=settings,
        completion_client=make_client("completion"),
        transcription_client=make_client("transcription"),
    )


@pytest.fixture
def pipeline(
    board: InMemoryBoard,
    completion: MockCompletionProvider,
    transcriber: MockTranscriptionProvider,
    settings: Settings,
) -> BoardPipeline:
    return build_pipeline(board, settings, completion, transcriber)


def contents(cards: List[Card]) -> List[str]:
    return [card.content for card in cards]
