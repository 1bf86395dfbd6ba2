"""Common exceptions raised by the board placement service."""
from __future__ import annotations


class BoardflowError(RuntimeError):
    """Base error carrying an optional underlying cause."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class BoardUnavailableError(BoardflowError):
    """Raised when the board platform cannot be reached or rejects a call."""


class RegionUnavailableError(BoardflowError):
    """Raised when a region can neither be found nor created."""


class PlacementOutOfBoundsError(BoardflowError):
    """Raised when a computed card position falls outside its region."""


class CaptureDeviceError(BoardflowError):
    """Raised when a capture device cannot be opened or read."""


class CaptureStateError(BoardflowError):
    """Raised when a capture operation is invalid for the current state."""


class TranscriptionError(BoardflowError):
    """Raised when the transcription service fails for a chunk."""


class CompletionError(BoardflowError):
    """Raised when the completion service fails or returns nothing usable."""


__all__ = [
    "BoardUnavailableError",
    "BoardflowError",
    "CaptureDeviceError",
    "CaptureStateError",
    "CompletionError",
    "PlacementOutOfBoundsError",
    "RegionUnavailableError",
    "TranscriptionError",
]
