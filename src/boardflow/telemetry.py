"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import os
import platform
import socket
import sys
import time
import traceback
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional


LOGGER = logging.getLogger("boardflow.telemetry")

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "BOARD_BACKEND",
    "MIRO_BOARD_ID",
    "MIRO_API_URL",
    "LLM_PROVIDER",
    "OPENAI_COMPLETION_MODEL",
    "OPENAI_TRANSCRIPTION_MODEL",
    "BOARD_MIN_INTERVAL_MS",
    "BOARD_MAX_RETRIES",
    "RELEVANCE_MIN",
    "RELEVANCE_MAX",
    "RELEVANCE_THRESHOLD",
    "CAPTURE_CHUNK_SECONDS",
    "TRANSCRIPTION_TIMEOUT",
)

_PREVIEW_CHARS = 80


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def _preview(text: str | None) -> str | None:
    if text is None:
        return None
    text = " ".join(text.split())
    if len(text) <= _PREVIEW_CHARS:
        return text
    return text[: _PREVIEW_CHARS - 3] + "..."


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    trace_id: str | None = None,
    req_id: str | None = None,
    session_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if trace_id:
        event["trace_id"] = trace_id
    if req_id:
        event["req_id"] = req_id
    if session_id:
        event["session_id"] = session_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    if extra:
        event.update(extra)
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    env_values = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG if os.getenv(key) is not None}
    details = {
        "env": env_values,
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }
    payload = {
        "pid": os.getpid(),
        "hostname": socket.gethostname(),
        "cwd": str(Path.cwd()),
    }
    log_event(LOGGER, "app.startup", details=details, extra=payload)


def emit_board_call_failed(
    *,
    operation: str,
    attempts: int,
    error: BaseException,
    fallback_used: bool = True,
) -> None:
    details = {
        "operation": operation,
        "attempts": attempts,
        "fallback_used": fallback_used,
        "error_type": type(error).__name__,
    }
    log_event(LOGGER, "external.call_failed", level="error", details=details, exc=str(error))


def emit_classification_event(
    *,
    point: str,
    score: int,
    category: str,
    corpus_size: int,
    cached: bool,
    fallback: bool = False,
    session_id: str | None = None,
    duration_ms: float | None = None,
) -> None:
    details = {
        "point": _preview(point),
        "score": score,
        "category": category,
        "corpus_size": corpus_size,
        "cached": cached,
        "fallback": fallback,
    }
    level = "warning" if fallback else "info"
    log_event(
        LOGGER,
        "relevance.classified",
        level=level,
        session_id=session_id,
        duration_ms=duration_ms,
        details=details,
    )


def emit_transcription_event(
    step: str,
    *,
    sequence: int,
    size_bytes: int | None = None,
    text_chars: int | None = None,
    duration_ms: float | None = None,
    session_id: str | None = None,
    error: BaseException | str | None = None,
) -> None:
    details = {
        "sequence": sequence,
        "size_bytes": size_bytes,
        "text_chars": text_chars,
    }
    level = "warning" if error is not None else "info"
    log_event(
        LOGGER,
        step,
        level=level,
        session_id=session_id,
        duration_ms=duration_ms,
        details=details,
        exc=error,
    )


def emit_segmentation_event(
    *,
    input_chars: int,
    points: int,
    strategy: str,
    session_id: str | None = None,
) -> None:
    details = {"input_chars": input_chars, "points": points, "strategy": strategy}
    log_event(LOGGER, "segmentation.complete", session_id=session_id, details=details)


def emit_placement_event(
    step: str,
    *,
    region: str,
    score: int | None,
    cards: int,
    rows_consumed: int,
    position: tuple[float, float] | None = None,
    session_id: str | None = None,
    reason: str | None = None,
) -> None:
    details: dict[str, Any] = {
        "region": region,
        "score": score,
        "cards": cards,
        "rows_consumed": rows_consumed,
        "position": list(position) if position is not None else None,
    }
    if reason:
        details["reason"] = reason
    level = "warning" if reason else "info"
    log_event(LOGGER, step, level=level, session_id=session_id, details=details)


def emit_session_event(step: str, *, session_id: str, **details: Any) -> None:
    log_event(LOGGER, step, session_id=session_id, details=details)


def emit_exception(
    *,
    module: str,
    error: BaseException,
    req_id: str | None = None,
    session_id: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        req_id=req_id,
        session_id=session_id,
        details=details,
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    log_event(logger or LOGGER, f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    finally:
        end = time.perf_counter()
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            duration_ms=(end - start) * 1000.0,
            details=fields,
        )


__all__ = [
    "emit_app_startup_event",
    "emit_board_call_failed",
    "emit_classification_event",
    "emit_transcription_event",
    "emit_segmentation_event",
    "emit_placement_event",
    "emit_session_event",
    "emit_exception",
    "traced_duration",
    "log_event",
]
