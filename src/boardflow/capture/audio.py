"""Encoding helpers that turn sample windows into self-contained WAV units."""
from __future__ import annotations

import io
import wave

import numpy as np

from boardflow.errors import CaptureDeviceError

WAV_HEADER_BYTES = 44
_PCM16_MAX = 32767


def to_mono(samples: np.ndarray) -> np.ndarray:
    data = np.asarray(samples, dtype=np.float32)
    if data.ndim == 2:
        data = data.mean(axis=1)
    return data.reshape(-1)


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode float samples in ``[-1, 1]`` as 16-bit PCM mono WAV bytes."""

    pcm = (np.clip(to_mono(samples), -1.0, 1.0) * _PCM16_MAX).astype("<i2")
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as writer:
        writer.setnchannels(1)
        writer.setsampwidth(2)
        writer.setframerate(sample_rate)
        writer.writeframes(pcm.tobytes())
    return buffer.getvalue()


def decode_wav(data: bytes) -> tuple[np.ndarray, int]:
    """Decode WAV bytes into mono float32 samples and the sample rate."""

    try:
        with wave.open(io.BytesIO(data), "rb") as reader:
            channels = reader.getnchannels()
            width = reader.getsampwidth()
            rate = reader.getframerate()
            frames = reader.readframes(reader.getnframes())
    except (wave.Error, EOFError) as error:
        raise CaptureDeviceError(f"Unreadable WAV audio: {error}", cause=error) from error

    if width == 1:
        samples = (np.frombuffer(frames, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    elif width == 2:
        samples = np.frombuffer(frames, dtype="<i2").astype(np.float32) / 32768.0
    elif width == 4:
        samples = np.frombuffer(frames, dtype="<i4").astype(np.float32) / 2147483648.0
    else:
        raise CaptureDeviceError(f"Unsupported WAV sample width: {width} bytes")

    if channels > 1:
        samples = samples.reshape(-1, channels).mean(axis=1)
    return samples.astype(np.float32), rate


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear resampling; adequate for speech sent to a transcription service."""

    if source_rate == target_rate or samples.size == 0:
        return samples
    duration = samples.size / source_rate
    target_size = max(1, int(round(duration * target_rate)))
    source_times = np.arange(samples.size) / source_rate
    target_times = np.arange(target_size) / target_rate
    return np.interp(target_times, source_times, samples).astype(np.float32)


def is_valid_wav(data: bytes | None, min_bytes: int) -> bool:
    """True when ``data`` is a RIFF/WAVE unit of at least ``min_bytes``."""

    if not data or len(data) < max(min_bytes, WAV_HEADER_BYTES):
        return False
    return data[:4] == b"RIFF" and data[8:12] == b"WAVE"


__all__ = ["decode_wav", "encode_wav", "is_valid_wav", "resample", "to_mono"]
