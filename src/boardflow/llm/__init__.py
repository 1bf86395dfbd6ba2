"""Language service providers and factories."""

from __future__ import annotations

import logging

from boardflow.config import LLMSettings, get_settings

from .base import CompletionOptions, CompletionProvider, TranscriptionHints, TranscriptionProvider
from .mock import MockCompletionProvider, MockTranscriptionProvider

LOGGER = logging.getLogger(__name__)


def create_completion_provider(settings: LLMSettings | None = None) -> CompletionProvider:
    settings = settings or get_settings().llm
    if settings.provider == "openai":
        from .openai_provider import OpenAICompletionProvider

        return OpenAICompletionProvider(settings)
    if settings.provider != "mock":
        LOGGER.warning("Unknown LLM_PROVIDER %s; using mock completions", settings.provider)
    return MockCompletionProvider()


def create_transcription_provider(settings: LLMSettings | None = None) -> TranscriptionProvider:
    settings = settings or get_settings().llm
    if settings.provider == "openai":
        from .openai_provider import OpenAITranscriptionProvider

        return OpenAITranscriptionProvider(settings)
    if settings.provider != "mock":
        LOGGER.warning("Unknown LLM_PROVIDER %s; using mock transcription", settings.provider)
    return MockTranscriptionProvider()


__all__ = [
    "CompletionOptions",
    "CompletionProvider",
    "MockCompletionProvider",
    "MockTranscriptionProvider",
    "TranscriptionHints",
    "TranscriptionProvider",
    "create_completion_provider",
    "create_transcription_provider",
]
