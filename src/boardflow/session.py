"""Per-session state: counters, cancellation, progress and the score cache."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict

from boardflow.cache import TTLCache
from boardflow.models import BatchReport, PlacementCounters
from boardflow.telemetry import emit_session_event

LOGGER = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"completed", "cancelled", "failed"})


class CancellationToken:
    """Cooperative cancellation flag passed down the processing chain."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()


class ProgressTracker:
    """Monotonically non-decreasing completion percentage."""

    UNKNOWN_TOTAL_STEP = 10.0
    UNKNOWN_TOTAL_CAP = 90.0

    def __init__(self, total: int | None = None) -> None:
        self.total = total
        self.completed = 0
        self._percent = 0.0

    @property
    def percent(self) -> float:
        return self._percent

    def _update(self, value: float) -> None:
        self._percent = max(self._percent, min(100.0, value))

    def set_total(self, total: int | None) -> None:
        self.total = total

    def advance(self, steps: int = 1) -> float:
        self.completed += steps
        if self.total:
            self._update(min(self.completed, self.total) / self.total * 100.0)
        else:
            self._update(min(self.UNKNOWN_TOTAL_CAP, self._percent + self.UNKNOWN_TOTAL_STEP * steps))
        return self._percent

    def complete(self) -> float:
        self._update(100.0)
        return self._percent


@dataclass
class SessionContext:
    """Mutable state owned by one processing session."""

    session_id: str
    score_cache: TTLCache[int]
    counters: Dict[str, PlacementCounters] = field(default_factory=dict)
    token: CancellationToken = field(default_factory=CancellationToken)
    progress: ProgressTracker = field(default_factory=ProgressTracker)
    report: BatchReport = field(default_factory=BatchReport)
    status: str = "idle"
    created_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def counters_for(self, region_id: str) -> PlacementCounters | None:
        return self.counters.get(region_id)

    def begin(self, status: str = "processing") -> None:
        self.token.reset()
        self.progress = ProgressTracker()
        self.report = BatchReport()
        self.status = status
        self.finished_at = None
        emit_session_event("session.start", session_id=self.session_id, status=status)

    def finish(self) -> None:
        self.status = "cancelled" if self.token.cancelled else "completed"
        self.finished_at = self.clock()
        if not self.token.cancelled:
            self.progress.complete()
        emit_session_event(
            "session.complete",
            session_id=self.session_id,
            status=self.status,
            attempted=self.report.attempted,
            placed=self.report.placed,
            duplicates=self.report.duplicates,
            failed=self.report.failed,
        )

    def fail(self) -> None:
        self.status = "failed"
        self.finished_at = self.clock()


class SessionRegistry:
    """Process-memory store of sessions.

    Finished sessions stay readable for ``retention`` seconds so their status
    can still be polled, then they are evicted on the next lookup.
    """

    def __init__(
        self,
        score_cache_ttl: float = 1800.0,
        *,
        retention: float = 900.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.score_cache_ttl = score_cache_ttl
        self.retention = retention
        self._clock = clock
        self._sessions: Dict[str, SessionContext] = {}

    def _evict_finished(self) -> None:
        now = self._clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.status in TERMINAL_STATUSES
            and session.finished_at is not None
            and now - session.finished_at >= self.retention
        ]
        for session_id in expired:
            self.discard(session_id)
        if expired:
            LOGGER.info("Evicted %s finished sessions", len(expired))

    def get_or_create(self, session_id: str | None = None) -> SessionContext:
        self._evict_finished()
        session_id = session_id or uuid.uuid4().hex
        session = self._sessions.get(session_id)
        if session is None:
            session = SessionContext(
                session_id=session_id,
                score_cache=TTLCache(self.score_cache_ttl),
                clock=self._clock,
            )
            self._sessions[session_id] = session
            LOGGER.info("Created session %s", session_id)
        return session

    def get(self, session_id: str) -> SessionContext | None:
        self._evict_finished()
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = [
    "CancellationToken",
    "ProgressTracker",
    "SessionContext",
    "SessionRegistry",
    "TERMINAL_STATUSES",
]
