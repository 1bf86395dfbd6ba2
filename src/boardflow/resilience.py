"""Retry and rate limiting helpers for calls to external services."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from boardflow.config import RetrySettings
from boardflow.errors import CaptureStateError, PlacementOutOfBoundsError
from boardflow.telemetry import emit_board_call_failed

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
SleepFn = Callable[[float], Awaitable[None]]

# Raised deliberately by callers; retrying cannot change the outcome.
NON_RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    PlacementOutOfBoundsError,
    CaptureStateError,
)


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_base: float = 0.1
    max_delay: float = 5.0

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            backoff_base=settings.backoff_base,
            max_delay=settings.max_delay,
        )


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, Exception) and not isinstance(error, NON_RETRYABLE_ERRORS)


def _before_sleep(name: str) -> Callable[[RetryCallState], None]:
    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome is not None else None
        wait_seconds = retry_state.next_action.sleep if retry_state.next_action is not None else 0.0
        LOGGER.warning(
            "Retrying %s after attempt %s failed: %s",
            name,
            retry_state.attempt_number,
            error,
            extra={
                "operation": name,
                "attempt": retry_state.attempt_number,
                "wait_seconds": round(float(wait_seconds), 3),
                "error_type": type(error).__name__ if error else None,
            },
        )

    return _log_retry


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    name: str = "operation",
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """Await ``operation`` retrying failures with exponential backoff.

    The delay before retry ``n`` (counting from zero) is ``backoff_base * 2**n``
    capped at ``max_delay``. The last error is re-raised once ``max_attempts``
    is exhausted; errors in :data:`NON_RETRYABLE_ERRORS` are raised immediately.
    """

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, policy.max_attempts)),
        wait=wait_exponential(multiplier=policy.backoff_base, exp_base=2, max=policy.max_delay),
        retry=retry_if_exception(is_retryable),
        before_sleep=_before_sleep(name),
        reraise=True,
        sleep=sleep,
    )
    # ``operation`` may be a plain callable returning an awaitable, so each
    # attempt awaits it explicitly.
    async for attempt in retrying:
        with attempt:
            return await operation()
    raise RuntimeError(f"{name} finished without an outcome")


class RateLimitedClient:
    """Serialise calls to one external service with a minimum gap between them."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        min_interval: float = 0.1,
        name: str = "external",
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self.min_interval = max(0.0, min_interval)
        self.name = name
        self._sleep = sleep
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_completed: float | None = None

    @classmethod
    def from_settings(cls, settings: RetrySettings, *, name: str = "external") -> "RateLimitedClient":
        return cls(RetryPolicy.from_settings(settings), min_interval=settings.min_interval, name=name)

    async def _wait_for_slot(self) -> None:
        if self._last_completed is None:
            return
        remaining = self.min_interval - (self._clock() - self._last_completed)
        if remaining > 0:
            await self._sleep(remaining)

    async def call(
        self,
        operation_name: str,
        thunk: Callable[[], Awaitable[T]],
        fallback: T,
    ) -> T:
        """Run ``thunk`` under the rate limit and retry policy.

        Returns ``fallback`` when every attempt failed. Non-retryable errors and
        cancellation propagate to the caller.
        """

        async with self._lock:
            await self._wait_for_slot()
            try:
                return await with_retry(
                    thunk,
                    self.policy,
                    name=f"{self.name}.{operation_name}",
                    sleep=self._sleep,
                )
            except NON_RETRYABLE_ERRORS:
                raise
            except Exception as error:
                emit_board_call_failed(
                    operation=f"{self.name}.{operation_name}",
                    attempts=self.policy.max_attempts,
                    error=error,
                )
                return fallback
            finally:
                self._last_completed = self._clock()


__all__ = [
    "NON_RETRYABLE_ERRORS",
    "RateLimitedClient",
    "RetryPolicy",
    "is_retryable",
    "with_retry",
]
