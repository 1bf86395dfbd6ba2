"""Audio and typed-text capture sources."""

from .audio import decode_wav, encode_wav, is_valid_wav, resample
from .devices import (
    ArrayCaptureDevice,
    AudioStream,
    CaptureDevice,
    StreamConstraints,
    WaveFileCaptureDevice,
)
from .recorder import AudioCapture, CaptureState, TextHandler
from .text import TextCapture, split_windows

__all__ = [
    "ArrayCaptureDevice",
    "AudioCapture",
    "AudioStream",
    "CaptureDevice",
    "CaptureState",
    "StreamConstraints",
    "TextCapture",
    "TextHandler",
    "WaveFileCaptureDevice",
    "decode_wav",
    "encode_wav",
    "is_valid_wav",
    "resample",
    "split_windows",
]
