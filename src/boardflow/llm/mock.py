"""Deterministic providers used for offline runs and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .base import CompletionOptions, CompletionProvider, TranscriptionHints, TranscriptionProvider

Responder = Callable[[str, str], str]


def _default_responder(system_prompt: str, user_prompt: str) -> str:
    if "Point to evaluate" in user_prompt:
        return "3"
    return f"content: {user_prompt.strip()}\ncategory: General"


@dataclass
class MockCompletionProvider(CompletionProvider):
    """Answer completions from a responder function and record every call."""

    responder: Optional[Responder] = None
    calls: List[tuple[str, str]] = field(default_factory=list)
    model_name: str = "mock-completion"

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        options: CompletionOptions | None = None,
    ) -> str:
        self.calls.append((system_prompt, user_prompt))
        responder = self.responder or _default_responder
        return responder(system_prompt, user_prompt)


@dataclass
class MockTranscriptionProvider(TranscriptionProvider):
    """Return scripted transcripts in order, then a predictable placeholder."""

    scripted: List[str] = field(default_factory=list)
    calls: List[int] = field(default_factory=list)
    model_name: str = "mock-transcription"

    async def transcribe(self, audio: bytes, hints: TranscriptionHints | None = None) -> str:
        self.calls.append(len(audio))
        if self.scripted:
            return self.scripted.pop(0)
        return f"Transcribed segment {len(self.calls)} containing {len(audio)} bytes of audio."


__all__ = ["MockCompletionProvider", "MockTranscriptionProvider"]
