"""Orchestrate capture, segmentation, classification and placement per session."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from boardflow.board import BoardGateway, BoardPlatform, get_board
from boardflow.capture import AudioCapture, CaptureDevice, TextCapture
from boardflow.config import Settings, get_settings
from boardflow.errors import PlacementOutOfBoundsError
from boardflow.layout import PackingEngine, counter_bucket
from boardflow.llm import (
    CompletionProvider,
    TranscriptionProvider,
    create_completion_provider,
    create_transcription_provider,
)
from boardflow.logging_config import PLACEMENT_AUDIT_LOGGER
from boardflow.models import BatchReport, CaptureResult, ContentChunk, DesignPoint, PlacementCounters, Region
from boardflow.regions import RegionManager, frame_name_for_mode
from boardflow.relevance import RelevanceService
from boardflow.resilience import RateLimitedClient
from boardflow.segmentation import Segmenter, split_marked_points
from boardflow.session import SessionContext, SessionRegistry
from boardflow.telemetry import emit_exception, emit_placement_event, traced_duration

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(PLACEMENT_AUDIT_LOGGER)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(slots=True)
class PipelineRun:
    """Outcome of one capture-to-board run."""

    session_id: str
    report: BatchReport
    capture: CaptureResult = field(default_factory=CaptureResult)


class BoardPipeline:
    """High level orchestration of the capture-to-board workflow."""

    def __init__(
        self,
        *,
        gateway: BoardGateway,
        completion: CompletionProvider,
        transcriber: TranscriptionProvider,
        settings: Settings | None = None,
        completion_client: RateLimitedClient | None = None,
        transcription_client: RateLimitedClient | None = None,
        sessions: SessionRegistry | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.gateway = gateway
        self.transcriber = transcriber
        self.completion_client = completion_client or RateLimitedClient.from_settings(
            self.settings.retry, name="completion"
        )
        self.transcription_client = transcription_client or RateLimitedClient.from_settings(
            self.settings.retry, name="transcription"
        )
        self.regions = RegionManager(gateway, self.settings.regions, self.settings.relevance)
        self.relevance = RelevanceService(completion, self.completion_client, self.settings.relevance)
        self.segmenter = Segmenter(completion, self.completion_client, self.settings.segmentation)
        self.engine = PackingEngine(gateway, self.settings.cards, self.settings.layout)
        self.sessions = sessions if sessions is not None else SessionRegistry(self.settings.relevance.cache_ttl)
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        board: BoardPlatform | None = None,
        completion: CompletionProvider | None = None,
        transcriber: TranscriptionProvider | None = None,
    ) -> "BoardPipeline":
        settings = settings or get_settings()
        platform = board or get_board()
        gateway = BoardGateway(platform, RateLimitedClient.from_settings(settings.retry, name="board"))
        return cls(
            gateway=gateway,
            completion=completion or create_completion_provider(settings.llm),
            transcriber=transcriber or create_transcription_provider(settings.llm),
            settings=settings,
        )

    def session(self, session_id: str | None = None) -> SessionContext:
        return self.sessions.get_or_create(session_id)

    def cancel(self, session_id: str) -> bool:
        session = self.sessions.get(session_id)
        if session is None:
            return False
        session.token.cancel()
        LOGGER.info("Cancellation requested for session %s", session_id)
        return True

    def _counters_for(self, session: SessionContext, region: Region, existing: int) -> PlacementCounters:
        counters = session.counters_for(region.id)
        if counters is None:
            relevance = self.settings.relevance
            counters = PlacementCounters(relevance.min_score, relevance.max_score, start=existing)
            session.counters[region.id] = counters
        return counters

    async def place_points(
        self,
        session: SessionContext,
        points: Sequence[DesignPoint],
        *,
        mode: str = "decision",
        region_name: str | None = None,
    ) -> BatchReport:
        """Classify and place ``points`` one at a time, skipping duplicates."""

        report = BatchReport(attempted=len(points))
        if not points:
            return report

        target = region_name or frame_name_for_mode(mode)
        with traced_duration("placement.prepare", region=target, session_id=session.session_id, points=len(points)):
            region = await self.regions.ensure_region(target)
            existing = await self.regions.get_contents(region)
            counters = self._counters_for(session, region, len(existing))
            fresh, duplicates = self.regions.filter_duplicates(points, existing, splitter=self.engine.chunks_for)
            corpus = await self.regions.reference_corpus()
        report.duplicates = len(duplicates)
        if duplicates:
            LOGGER.info("Skipping %s duplicate points in %s", len(duplicates), region.title)

        for point in fresh:
            if session.token.cancelled:
                report.cancelled = True
                break
            relevance = await self.relevance.evaluate(
                point.text,
                corpus,
                cache=session.score_cache,
                session_id=session.session_id,
            )
            if session.token.cancelled:
                report.cancelled = True
                break

            try:
                placement = await self.engine.place(
                    region,
                    point.text,
                    relevance.score,
                    mode,
                    counters,
                    session_id=session.session_id,
                )
            except PlacementOutOfBoundsError as error:
                LOGGER.warning("Placement skipped in %s: %s", region.title, error)
                emit_placement_event(
                    "placement.failed",
                    region=region.title,
                    score=relevance.score,
                    cards=0,
                    rows_consumed=0,
                    session_id=session.session_id,
                    reason="out_of_bounds",
                )
                report.failed += 1
                continue

            if not placement.placed:
                report.failed += 1
                continue

            counters.advance(counter_bucket(region, relevance.score, counters), placement.rows_consumed)
            report.placed += 1
            report.cards_created += len(placement.cards)
            AUDIT_LOGGER.info(
                {
                    "event": "placement",
                    "session_id": session.session_id,
                    "region": region.title,
                    "score": relevance.score,
                    "category": relevance.category,
                    "cards": [card.id for card in placement.cards],
                }
            )
            if self.settings.cards.creation_delay > 0:
                await self._sleep(self.settings.cards.creation_delay)

        session.report.merge(report)
        return report

    async def process_points(
        self,
        session_id: str | None,
        texts: Sequence[str],
        *,
        mode: str = "decision",
        region_name: str | None = None,
    ) -> PipelineRun:
        session = self.session(session_id)
        session.begin()
        points = [DesignPoint(text=text.strip()) for text in texts if text and text.strip()]
        try:
            report = await self.place_points(session, points, mode=mode, region_name=region_name)
        except Exception as error:
            emit_exception(module=f"{__name__}.points", error=error, session_id=session.session_id)
            session.fail()
            raise
        session.finish()
        return PipelineRun(session_id=session.session_id, report=report)

    def _chunk_handler(
        self,
        session: SessionContext,
        report: BatchReport,
        mode: str,
        region_name: str | None,
    ) -> Callable[[ContentChunk, str], Awaitable[None]]:
        async def _handle(chunk: ContentChunk, text: str) -> None:
            points = await self.segmenter.segment(
                text,
                source_sequence=chunk.sequence,
                session_id=session.session_id,
            )
            if session.token.cancelled:
                return
            report.merge(await self.place_points(session, points, mode=mode, region_name=region_name))

        return _handle

    async def process_text(
        self,
        session_id: str | None,
        text: str,
        *,
        mode: str = "decision",
        region_name: str | None = None,
        structured: bool = False,
    ) -> PipelineRun:
        """Run a typed transcript (or a structured ``##``/``**`` response) onto the board."""

        session = self.session(session_id)
        session.begin()
        report = BatchReport()
        try:
            if structured:
                points = [DesignPoint(text=point) for point in split_marked_points(text)]
                report.merge(await self.place_points(session, points, mode=mode, region_name=region_name))
                capture = CaptureResult(text=text, chunks=1 if points else 0, no_content=not points)
            else:
                capture = await TextCapture(self.settings.capture).run(
                    text,
                    self._chunk_handler(session, report, mode, region_name),
                    token=session.token,
                    progress=session.progress,
                )
        except Exception as error:
            emit_exception(module=f"{__name__}.text", error=error, session_id=session.session_id)
            session.fail()
            raise
        report.cancelled = report.cancelled or capture.cancelled or session.token.cancelled
        session.finish()
        return PipelineRun(session_id=session.session_id, report=report, capture=capture)

    async def run_capture(
        self,
        session_id: str | None,
        device: CaptureDevice,
        *,
        mode: str = "decision",
        region_name: str | None = None,
    ) -> PipelineRun:
        """Capture ``device`` to the end of its stream, placing points chunk by chunk."""

        session = self.session(session_id)
        session.begin("recording")
        report = BatchReport()
        capture = AudioCapture(
            device,
            self.transcriber,
            self.transcription_client,
            self.settings.capture,
            on_text=self._chunk_handler(session, report, mode, region_name),
            session_id=session.session_id,
        )
        try:
            result = await capture.record(token=session.token, progress=session.progress)
        except Exception as error:
            emit_exception(module=f"{__name__}.capture", error=error, session_id=session.session_id)
            session.fail()
            raise
        report.cancelled = report.cancelled or result.cancelled
        session.finish()
        return PipelineRun(session_id=session.session_id, report=report, capture=result)


_PIPELINE_SINGLETON: BoardPipeline | None = None


def get_pipeline() -> BoardPipeline:
    global _PIPELINE_SINGLETON
    if _PIPELINE_SINGLETON is None:
        _PIPELINE_SINGLETON = BoardPipeline.from_settings()
    return _PIPELINE_SINGLETON


def reset_pipeline() -> None:
    global _PIPELINE_SINGLETON
    _PIPELINE_SINGLETON = None


__all__ = ["BoardPipeline", "PipelineRun", "get_pipeline", "reset_pipeline"]
