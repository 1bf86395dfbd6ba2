"""Capture devices producing blocks of float samples."""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from boardflow.errors import CaptureDeviceError

from .audio import decode_wav, resample, to_mono

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class StreamConstraints:
    sample_rate: int = 16000
    channels: int = 1
    echo_cancellation: bool = True
    noise_suppression: bool = True
    block_seconds: float = 0.5


class AudioStream(ABC):
    """An open stream of mono float32 samples."""

    sample_rate: int
    total_frames: int | None = None

    @abstractmethod
    async def read(self, frames: int) -> np.ndarray | None:
        """Return up to ``frames`` samples, or ``None`` once the stream has ended."""

    async def close(self) -> None:
        """Release the underlying resource."""


class CaptureDevice(ABC):
    @abstractmethod
    async def open_stream(self, constraints: StreamConstraints) -> AudioStream:
        """Open a stream honouring ``constraints`` or raise :class:`CaptureDeviceError`."""

    async def close_stream(self, stream: AudioStream) -> None:
        await stream.close()


class ArrayStream(AudioStream):
    def __init__(self, samples: np.ndarray, sample_rate: int, *, realtime: bool = False) -> None:
        self._samples = samples
        self._offset = 0
        self._realtime = realtime
        self.sample_rate = sample_rate
        self.total_frames = int(samples.size)
        self.closed = False

    async def read(self, frames: int) -> np.ndarray | None:
        if self.closed:
            raise CaptureDeviceError("Stream is closed")
        if self._offset >= self._samples.size:
            return None
        block = self._samples[self._offset : self._offset + frames]
        self._offset += block.size
        if self._realtime:
            await asyncio.sleep(block.size / self.sample_rate)
        else:
            await asyncio.sleep(0)
        return block

    async def close(self) -> None:
        self.closed = True


class ArrayCaptureDevice(CaptureDevice):
    """Serve pre-recorded samples, for uploads and tests."""

    def __init__(self, samples: np.ndarray, sample_rate: int, *, realtime: bool = False) -> None:
        self.samples = to_mono(samples)
        self.sample_rate = sample_rate
        self.realtime = realtime
        self.opened = 0
        self.closed = 0

    async def open_stream(self, constraints: StreamConstraints) -> AudioStream:
        samples = resample(self.samples, self.sample_rate, constraints.sample_rate)
        self.opened += 1
        return ArrayStream(samples, constraints.sample_rate, realtime=self.realtime)

    async def close_stream(self, stream: AudioStream) -> None:
        await stream.close()
        self.closed += 1

    @classmethod
    def from_wav_bytes(cls, data: bytes, *, realtime: bool = False) -> "ArrayCaptureDevice":
        samples, rate = decode_wav(data)
        return cls(samples, rate, realtime=realtime)


class WaveFileCaptureDevice(ArrayCaptureDevice):
    """Replay a WAV file, optionally paced in real time."""

    def __init__(self, path: str | Path, *, realtime: bool = False) -> None:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as error:
            raise CaptureDeviceError(f"Cannot open audio file {path}", cause=error) from error
        samples, rate = decode_wav(data)
        super().__init__(samples, rate, realtime=realtime)
        self.path = path


__all__ = [
    "ArrayCaptureDevice",
    "ArrayStream",
    "AudioStream",
    "CaptureDevice",
    "StreamConstraints",
    "WaveFileCaptureDevice",
]
