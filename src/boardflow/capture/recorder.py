"""Chunked audio capture with ordered, cancellable transcription."""
from __future__ import annotations

import asyncio
import logging
import math
import time
from enum import Enum
from typing import Awaitable, Callable, List

import numpy as np

from boardflow.config import CaptureSettings
from boardflow.errors import CaptureDeviceError, CaptureStateError
from boardflow.llm import TranscriptionHints, TranscriptionProvider
from boardflow.models import CaptureResult, ContentChunk
from boardflow.resilience import RateLimitedClient
from boardflow.session import CancellationToken, ProgressTracker
from boardflow.telemetry import emit_transcription_event

from .audio import encode_wav, is_valid_wav
from .devices import AudioStream, CaptureDevice, StreamConstraints

LOGGER = logging.getLogger(__name__)

TextHandler = Callable[[ContentChunk, str], Awaitable[None]]


class CaptureState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"


class AudioCapture:
    """Cut a device stream into fixed windows and transcribe them in order.

    Each window is encoded as a complete WAV unit and transcribed through the
    rate limited client. Text is handed to ``on_text`` before the next window
    is processed, so downstream placement follows capture order.
    """

    def __init__(
        self,
        device: CaptureDevice,
        transcriber: TranscriptionProvider,
        client: RateLimitedClient,
        settings: CaptureSettings | None = None,
        *,
        on_text: TextHandler | None = None,
        session_id: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.device = device
        self.transcriber = transcriber
        self.client = client
        self.settings = settings or CaptureSettings()
        self.on_text = on_text
        self.session_id = session_id
        self._clock = clock
        self.state = CaptureState.IDLE
        self.token = CancellationToken()
        self.progress = ProgressTracker()
        self._stream: AudioStream | None = None
        self._task: asyncio.Task[None] | None = None
        self._stop_requested = False
        self._reset_buffers()

    def _reset_buffers(self) -> None:
        self._buffer: List[np.ndarray] = []
        self._buffered = 0
        self._sequence = 0
        self._valid_chunks = 0
        self._failed_chunks = 0
        self._texts: List[str] = []

    @property
    def constraints(self) -> StreamConstraints:
        return StreamConstraints(sample_rate=self.settings.sample_rate, channels=self.settings.channels)

    @property
    def window_frames(self) -> int:
        return max(1, int(self.settings.chunk_seconds * self.settings.sample_rate))

    async def start(
        self,
        token: CancellationToken | None = None,
        progress: ProgressTracker | None = None,
    ) -> None:
        """Open the device stream and begin emitting chunks."""

        if self.state is not CaptureState.IDLE:
            raise CaptureStateError(f"Cannot start capture while {self.state.value}")
        try:
            stream = await self.device.open_stream(self.constraints)
        except CaptureDeviceError:
            raise
        except Exception as error:
            raise CaptureDeviceError(f"Could not open capture device: {error}", cause=error) from error

        self.token = token or CancellationToken()
        self.progress = progress or ProgressTracker()
        if stream.total_frames is not None:
            self.progress.set_total(max(1, math.ceil(stream.total_frames / self.window_frames)))
        self._reset_buffers()
        self._stream = stream
        self._stop_requested = False
        self.state = CaptureState.RECORDING
        LOGGER.info("Capture started with %.1fs windows", self.settings.chunk_seconds)
        self._task = asyncio.create_task(self._read_loop(stream))

    async def _read_loop(self, stream: AudioStream) -> None:
        block_frames = max(1, int(self.constraints.block_seconds * stream.sample_rate))
        while not self._stop_requested and not self.token.cancelled:
            block = await stream.read(block_frames)
            if block is None or block.size == 0:
                return
            self._buffer.append(block)
            self._buffered += block.size
            while self._buffered >= self.window_frames and not self.token.cancelled:
                await self._process_window(self._take(self.window_frames))

    def _take(self, frames: int) -> np.ndarray:
        joined = np.concatenate(self._buffer) if self._buffer else np.zeros(0, dtype=np.float32)
        window, rest = joined[:frames], joined[frames:]
        self._buffer = [rest] if rest.size else []
        self._buffered = int(rest.size)
        return window

    async def _process_window(self, samples: np.ndarray) -> None:
        sequence = self._sequence
        self._sequence += 1
        data = encode_wav(samples, self.settings.sample_rate)
        if not is_valid_wav(data, self.settings.min_bytes):
            LOGGER.info("Skipping chunk %s below %s bytes", sequence, self.settings.min_bytes)
            return
        self._valid_chunks += 1
        chunk = ContentChunk(
            sequence=sequence,
            captured_at=self._clock(),
            data=data,
            mime_type="audio/wav",
        )

        if self.token.cancelled:
            return
        text = await self._transcribe(chunk, data)
        if self.token.cancelled:
            LOGGER.info("Discarding chunk %s result after cancellation", sequence)
            return

        if text is None:
            self._failed_chunks += 1
        elif text.strip():
            self._texts.append(text.strip())
            if self.on_text is not None:
                await self.on_text(chunk, text.strip())
        self.progress.advance()

    async def _transcribe(self, chunk: ContentChunk, data: bytes) -> str | None:
        hints = TranscriptionHints(
            language=self.settings.language,
            prompt=self.settings.prompt,
            mime_type="audio/wav",
            filename=f"chunk-{chunk.sequence}.wav",
        )
        started = time.perf_counter()
        text = await self.client.call(
            "transcribe",
            lambda: asyncio.wait_for(
                self.transcriber.transcribe(data, hints),
                timeout=self.settings.transcription_timeout,
            ),
            None,
        )
        emit_transcription_event(
            "transcription.complete" if text is not None else "transcription.failed",
            sequence=chunk.sequence,
            size_bytes=chunk.size,
            text_chars=len(text) if text is not None else None,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            session_id=self.session_id,
            error=None if text is not None else "transcription exhausted retries",
        )
        return text

    async def wait_until_exhausted(self) -> None:
        """Wait for a finite stream to run out of samples."""

        if self._task is not None:
            await asyncio.shield(self._task)

    async def stop(self) -> CaptureResult:
        """Flush the partial window, close the stream and return the transcript."""

        if self.state is not CaptureState.RECORDING:
            raise CaptureStateError(f"Cannot stop capture while {self.state.value}")
        self.state = CaptureState.STOPPING
        self._stop_requested = True
        try:
            if self._task is not None:
                await self._task
            if self._buffered and not self.token.cancelled:
                await self._process_window(self._take(self._buffered))
        finally:
            if self._stream is not None:
                await self.device.close_stream(self._stream)
            self._stream = None
            self._task = None
            self.state = CaptureState.IDLE

        cancelled = self.token.cancelled
        if not cancelled:
            self.progress.complete()
        if self._valid_chunks == 0:
            LOGGER.info("No audio captured above %s bytes", self.settings.min_bytes)
            return CaptureResult(no_content=True, cancelled=cancelled)
        return CaptureResult(
            text=" ".join(self._texts),
            chunks=self._valid_chunks,
            failed_chunks=self._failed_chunks,
            cancelled=cancelled,
        )

    def cancel(self) -> None:
        self.token.cancel()

    async def record(
        self,
        token: CancellationToken | None = None,
        progress: ProgressTracker | None = None,
    ) -> CaptureResult:
        """Capture a finite stream from start to end."""

        await self.start(token=token, progress=progress)
        try:
            await self.wait_until_exhausted()
        except BaseException:
            await self._abort()
            raise
        return await self.stop()

    async def _abort(self) -> None:
        self._stop_requested = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        if self._stream is not None:
            await self.device.close_stream(self._stream)
        self._stream = None
        self._task = None
        self.state = CaptureState.IDLE


__all__ = ["AudioCapture", "CaptureState", "TextHandler"]
