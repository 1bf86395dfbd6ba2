"""Capture design discussions and place their points as cards on a shared board."""

__version__ = "0.1.0"
