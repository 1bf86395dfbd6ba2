"""Environment driven configuration for the board placement service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

LOGGER = logging.getLogger(__name__)

DEFAULT_TRANSCRIPTION_PROMPT = (
    "This is a design meeting discussing user interface concepts, interaction patterns, "
    "and design decisions. Technical terms and design vocabulary are expected."
)

# Frames that hold free-form proposals or dialogue; everything else is scored.
GENERAL_REGION_NAMES: tuple[str, ...] = (
    "Design-Proposal",
    "Thinking-Dialogue",
    "ProposalDialogue",
    "Analysis-Response",
    "Antagonistic-Response",
    "Designer-Thinking",
)


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def _str_from_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(slots=True)
class RetrySettings:
    min_interval: float = 0.1
    max_attempts: int = 3
    backoff_base: float = 0.1
    max_delay: float = 5.0


@dataclass(slots=True)
class RegionSettings:
    width: float = 1200.0
    height: float = 1600.0
    initial_x: float = 1000.0
    initial_y: float = 0.0
    general_names: tuple[str, ...] = GENERAL_REGION_NAMES
    corpus_region: str = "Design-Proposal"
    corpus_ttl: float = 60.0


@dataclass(slots=True)
class CardSettings:
    width: float = 300.0
    height: float = 200.0
    spacing: float = 50.0
    char_limit: int = 250
    split_threshold: float = 0.1
    chain_vertical_offset: float = 260.0
    chain_horizontal_offset: float = 40.0
    link_color: str = "#4262ff"
    creation_delay: float = 0.2
    palettes: dict[str, dict[str, str]] = field(
        default_factory=lambda: {
            "decision": {"high": "#fff9b1", "medium": "#d5f692", "low": "#ffcee0"},
            "response": {"high": "#a6ccf5", "medium": "#d5f692", "low": "#ffcee0"},
        }
    )


@dataclass(slots=True)
class LayoutSettings:
    items_per_column: int = 10
    min_margin: float = 20.0
    header_margin: float = 40.0
    bounds_margin: float = 10.0
    safety_margin: float = 5.0
    horizontal_factor: float = 0.85
    vertical_factor: float = 1.2
    fallback_y_ratio: float = 0.9
    min_columns: int = 2
    min_items_per_column: int = 6


@dataclass(slots=True)
class RelevanceSettings:
    min_score: int = 1
    max_score: int = 3
    threshold: int = 2
    cache_ttl: float = 1800.0
    temperature: float = 0.3
    max_tokens: int = 10


@dataclass(slots=True)
class SegmentationSettings:
    min_words: int = 15
    target_min_chars: int = 150
    target_max_chars: int = 250
    temperature: float = 0.2


@dataclass(slots=True)
class CaptureSettings:
    chunk_seconds: float = 10.0
    sample_rate: int = 16000
    channels: int = 1
    min_bytes: int = 1000
    transcription_timeout: float = 120.0
    text_chunk_chars: int = 750
    language: str = "en"
    prompt: str = DEFAULT_TRANSCRIPTION_PROMPT


@dataclass(slots=True)
class BoardSettings:
    backend: str = "memory"
    access_token: str | None = None
    board_id: str | None = None
    api_url: str = "https://api.miro.com/v2"
    timeout: float = 30.0


@dataclass(slots=True)
class LLMSettings:
    provider: str = "mock"
    api_key: str | None = None
    completion_model: str = "gpt-4o-mini"
    transcription_model: str = "gpt-4o-mini-transcribe"
    timeout: float = 120.0


@dataclass(slots=True)
class Settings:
    retry: RetrySettings = field(default_factory=RetrySettings)
    regions: RegionSettings = field(default_factory=RegionSettings)
    cards: CardSettings = field(default_factory=CardSettings)
    layout: LayoutSettings = field(default_factory=LayoutSettings)
    relevance: RelevanceSettings = field(default_factory=RelevanceSettings)
    segmentation: SegmentationSettings = field(default_factory=SegmentationSettings)
    capture: CaptureSettings = field(default_factory=CaptureSettings)
    board: BoardSettings = field(default_factory=BoardSettings)
    llm: LLMSettings = field(default_factory=LLMSettings)


def load_settings() -> Settings:
    """Build :class:`Settings` from environment variables."""

    relevance = RelevanceSettings(
        min_score=_int_from_env("RELEVANCE_MIN", 1),
        max_score=_int_from_env("RELEVANCE_MAX", 3),
        threshold=_int_from_env("RELEVANCE_THRESHOLD", 2),
        cache_ttl=_float_from_env("RELEVANCE_CACHE_TTL", 1800.0),
    )
    if relevance.min_score > relevance.max_score:
        LOGGER.warning(
            "Relevance range %s..%s is inverted; using defaults",
            relevance.min_score,
            relevance.max_score,
        )
        relevance = RelevanceSettings()

    return Settings(
        retry=RetrySettings(
            min_interval=_int_from_env("BOARD_MIN_INTERVAL_MS", 100) / 1000.0,
            max_attempts=max(1, _int_from_env("BOARD_MAX_RETRIES", 3)),
        ),
        regions=RegionSettings(corpus_ttl=_float_from_env("CORPUS_CACHE_TTL", 60.0)),
        cards=CardSettings(
            char_limit=max(1, _int_from_env("CARD_CHAR_LIMIT", 250)),
            creation_delay=_int_from_env("CREATION_DELAY_MS", 200) / 1000.0,
        ),
        relevance=relevance,
        capture=CaptureSettings(
            chunk_seconds=_float_from_env("CAPTURE_CHUNK_SECONDS", 10.0),
            transcription_timeout=_float_from_env("TRANSCRIPTION_TIMEOUT", 120.0),
        ),
        board=BoardSettings(
            backend=_str_from_env("BOARD_BACKEND", "memory").lower(),
            access_token=os.getenv("MIRO_ACCESS_TOKEN"),
            board_id=os.getenv("MIRO_BOARD_ID"),
            api_url=_str_from_env("MIRO_API_URL", "https://api.miro.com/v2"),
        ),
        llm=LLMSettings(
            provider=_str_from_env("LLM_PROVIDER", "mock").lower(),
            api_key=os.getenv("OPENAI_API_KEY"),
            completion_model=_str_from_env("OPENAI_COMPLETION_MODEL", "gpt-4o-mini"),
            transcription_model=_str_from_env("OPENAI_TRANSCRIPTION_MODEL", "gpt-4o-mini-transcribe"),
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


__all__ = [
    "BoardSettings",
    "CaptureSettings",
    "CardSettings",
    "DEFAULT_TRANSCRIPTION_PROMPT",
    "GENERAL_REGION_NAMES",
    "LLMSettings",
    "LayoutSettings",
    "RegionSettings",
    "RelevanceSettings",
    "RetrySettings",
    "SegmentationSettings",
    "Settings",
    "get_settings",
    "load_settings",
]
