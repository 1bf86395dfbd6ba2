"""Typed transcript source that yields the same chunk stream as audio capture."""
from __future__ import annotations

import logging
import re
import time
from typing import Callable, List

from boardflow.config import CaptureSettings
from boardflow.models import CaptureResult, ContentChunk
from boardflow.session import CancellationToken, ProgressTracker
from boardflow.text import normalize_text

from .recorder import TextHandler

_SENTENCE_END_RE = re.compile(r"[.!?](?=\s)")
LOGGER = logging.getLogger(__name__)


def _break_point(window: str, limit: int) -> int:
    """Where to cut ``window``: a paragraph, then a sentence, then a word boundary."""

    paragraph = window.rfind("\n\n")
    if paragraph >= limit // 3:
        return paragraph
    sentence_ends = [match.end() for match in _SENTENCE_END_RE.finditer(window)]
    if sentence_ends and sentence_ends[-1] >= limit // 4:
        return sentence_ends[-1]
    word = window.rfind(" ")
    if word >= limit // 4:
        return word
    return len(window)


def split_windows(text: str, limit: int) -> List[str]:
    """Cut ``text`` into stripped windows of at most ``limit`` characters."""

    limit = max(limit, 1)
    remaining = text.strip()
    windows: List[str] = []
    while remaining:
        if len(remaining) <= limit:
            windows.append(remaining)
            break
        cut = _break_point(remaining[:limit], limit)
        windows.append(remaining[:cut].rstrip())
        remaining = remaining[cut:].lstrip()
    return windows


class TextCapture:
    """Feed a pasted transcript through the pipeline in ~750 character windows."""

    def __init__(
        self,
        settings: CaptureSettings | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or CaptureSettings()
        self._clock = clock

    def chunks(self, text: str) -> List[ContentChunk]:
        normalized = normalize_text(text or "")
        return [
            ContentChunk(sequence=index, captured_at=self._clock(), text=piece, mime_type="text/plain")
            for index, piece in enumerate(split_windows(normalized, self.settings.text_chunk_chars))
        ]

    async def run(
        self,
        text: str,
        on_text: TextHandler,
        *,
        token: CancellationToken | None = None,
        progress: ProgressTracker | None = None,
    ) -> CaptureResult:
        token = token or CancellationToken()
        progress = progress or ProgressTracker()
        chunks = self.chunks(text)
        if not chunks:
            return CaptureResult(no_content=True)
        progress.set_total(len(chunks))
        delivered: List[str] = []
        for chunk in chunks:
            if token.cancelled:
                LOGGER.info("Text capture cancelled before chunk %s", chunk.sequence)
                break
            text_chunk = chunk.text or ""
            await on_text(chunk, text_chunk)
            delivered.append(text_chunk)
            progress.advance()
        if not token.cancelled:
            progress.complete()
        return CaptureResult(
            text="\n\n".join(delivered),
            chunks=len(delivered),
            cancelled=token.cancelled,
        )


__all__ = ["TextCapture", "split_windows"]
