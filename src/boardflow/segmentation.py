"""Turn raw transcripts into coherent design points."""
from __future__ import annotations

import logging
import re
from typing import Iterable, List

from boardflow.config import SegmentationSettings
from boardflow.llm import CompletionOptions, CompletionProvider
from boardflow.models import DEFAULT_CATEGORY, DesignPoint
from boardflow.resilience import RateLimitedClient
from boardflow.telemetry import emit_segmentation_event

LOGGER = logging.getLogger(__name__)

_FILLER_RE = re.compile(r"\b(?:um|uh)\b", re.IGNORECASE)
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,.!?;:])")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_NUMBERING_RE = re.compile(r"^\s*\d+[.)]\s*")
_SEPARATOR_RE = re.compile(r"-{3,}")
_HEADING_SPLIT_RE = re.compile(r"(?=##)")

SEGMENTATION_SYSTEM_PROMPT = """You are a transcript formatter. Your task is to break the raw transcript into meaningful segments.

Rules:
1. DO NOT summarize or change the content
2. DO NOT translate or rephrase
3. Split the text into logical segments at natural break points
4. Each segment MUST be a complete thought or statement (at least one full sentence)
5. Only fix basic punctuation and capitalization if needed
6. Combine very short, related statements into a single segment
7. Minimum segment length should be around 15-20 words to ensure meaningful content

Format each segment as:
content: [The exact transcript segment with basic punctuation]
category: [General]

Separate segments with a blank line."""


def clean_transcript(text: str) -> str:
    """Drop filler sounds and collapse whitespace."""

    cleaned = _FILLER_RE.sub("", text or "")
    cleaned = " ".join(cleaned.split())
    return _SPACE_BEFORE_PUNCT_RE.sub(r"\1", cleaned)


def parse_segment_blocks(response: str) -> List[DesignPoint]:
    """Parse ``content:``/``category:`` blocks separated by blank lines."""

    points: List[DesignPoint] = []
    for block in re.split(r"\n\s*\n", response or ""):
        content_lines: List[str] = []
        category = DEFAULT_CATEGORY
        for line in block.splitlines():
            key, sep, value = line.partition(":")
            label = key.strip().lower()
            if sep and label == "content":
                content_lines.append(value.strip())
            elif sep and label == "category":
                category = value.strip().strip("[]") or DEFAULT_CATEGORY
            elif content_lines and line.strip():
                content_lines.append(line.strip())
        content = " ".join(part for part in content_lines if part)
        if content:
            points.append(DesignPoint(text=content, category=category))
    return points


def split_sentences(text: str) -> List[str]:
    return [sentence.strip() for sentence in _SENTENCE_SPLIT_RE.split(text) if sentence.strip()]


def pack_sentences(sentences: Iterable[str], min_chars: int, max_chars: int) -> List[str]:
    """Group consecutive sentences into passages of roughly ``min_chars``..``max_chars``."""

    passages: List[str] = []
    current = ""
    for sentence in sentences:
        if current and len(current) >= min_chars and len(current) + 1 + len(sentence) > max_chars:
            passages.append(current)
            current = sentence
            continue
        current = f"{current} {sentence}" if current else sentence
        if len(current) >= max_chars:
            passages.append(current)
            current = ""
    if current:
        if passages and len(current) < min_chars:
            passages[-1] = f"{passages[-1]} {current}"
        else:
            passages.append(current)
    return passages


def split_marked_points(response: str) -> List[str]:
    """Split structured text on ``##`` headings / ``---`` rules or on ``**`` markers."""

    if not response:
        return []
    points: List[str] = []
    if "##" in response:
        for section in _SEPARATOR_RE.split(response):
            for subsection in _HEADING_SPLIT_RE.split(section.strip()):
                trimmed = subsection.strip()
                if not trimmed.startswith("##"):
                    continue
                title, _, body = trimmed.partition("\n")
                if title.strip():
                    points.append(title.strip())
                if body.strip():
                    points.append(body.strip())
    else:
        points = [part.strip() for part in response.split("**") if part.strip()]
    cleaned = [_NUMBERING_RE.sub("", point).strip() for point in points]
    return [point for point in cleaned if point]


class Segmenter:
    """Extract design points from a transcript, falling back to local sentence packing."""

    def __init__(
        self,
        provider: CompletionProvider,
        client: RateLimitedClient,
        settings: SegmentationSettings | None = None,
    ) -> None:
        self.provider = provider
        self.client = client
        self.settings = settings or SegmentationSettings()

    def _meets_minimum(self, point: DesignPoint) -> bool:
        return point.word_count >= self.settings.min_words

    def local_segments(self, text: str) -> List[DesignPoint]:
        passages = pack_sentences(
            split_sentences(text),
            self.settings.target_min_chars,
            self.settings.target_max_chars,
        )
        return [DesignPoint(text=passage) for passage in passages]

    async def segment(
        self,
        text: str,
        *,
        source_sequence: int | None = None,
        session_id: str | None = None,
    ) -> List[DesignPoint]:
        cleaned = clean_transcript(text)
        if not cleaned:
            return []

        response = await self.client.call(
            "segmentation.complete",
            lambda: self.provider.complete(
                SEGMENTATION_SYSTEM_PROMPT,
                cleaned,
                CompletionOptions(temperature=self.settings.temperature),
            ),
            None,
        )
        points = parse_segment_blocks(response) if response is not None else []
        strategy = "external"
        long_input = len(cleaned) >= 2 * self.settings.target_max_chars
        if response is None or (len(points) <= 1 and long_input):
            LOGGER.info(
                "External segmentation returned %s points for %s chars; splitting locally",
                len(points),
                len(cleaned),
            )
            points = self.local_segments(cleaned)
            strategy = "local"

        kept = [
            DesignPoint(text=point.text, category=point.category, source_sequence=source_sequence)
            for point in points
            if self._meets_minimum(point)
        ]
        emit_segmentation_event(
            input_chars=len(cleaned),
            points=len(kept),
            strategy=strategy,
            session_id=session_id,
        )
        return kept


__all__ = [
    "SEGMENTATION_SYSTEM_PROMPT",
    "Segmenter",
    "clean_transcript",
    "pack_sentences",
    "parse_segment_blocks",
    "split_marked_points",
    "split_sentences",
]
