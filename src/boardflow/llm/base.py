"""Provider interfaces for the completion and transcription services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

__all__ = [
    "CompletionOptions",
    "CompletionProvider",
    "TranscriptionHints",
    "TranscriptionProvider",
]


@dataclass(slots=True, frozen=True)
class CompletionOptions:
    temperature: float = 0.3
    max_tokens: int | None = None
    model: str | None = None


@dataclass(slots=True, frozen=True)
class TranscriptionHints:
    language: str | None = "en"
    prompt: str | None = None
    mime_type: str = "audio/wav"
    filename: str = "audio.wav"


class CompletionProvider(ABC):
    """Abstract interface for chat completion providers."""

    model_name = "unknown"

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        options: CompletionOptions | None = None,
    ) -> str:
        """Return the completion text or raise :class:`CompletionError`."""


class TranscriptionProvider(ABC):
    """Abstract interface for speech-to-text providers."""

    model_name = "unknown"

    @abstractmethod
    async def transcribe(self, audio: bytes, hints: TranscriptionHints | None = None) -> str:
        """Return the transcript of ``audio`` or raise :class:`TranscriptionError`."""
