"""Text normalisation utilities."""
from __future__ import annotations

import html
import re
import unicodedata

_WHITESPACE_RE = re.compile(r"[ \t]+")
_MULTIPLE_NEWLINES_RE = re.compile(r"\n{3,}")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+\n")
_TAG_RE = re.compile(r"<[^>]+>")


def normalize_text(text: str) -> str:
    """Normalise whitespace and Unicode representation, keeping paragraph breaks."""

    normalized = unicodedata.normalize("NFC", text)
    normalized = normalized.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _WHITESPACE_RE.sub(" ", normalized)
    normalized = _TRAILING_SPACE_RE.sub("\n", normalized)
    normalized = _MULTIPLE_NEWLINES_RE.sub("\n\n", normalized)
    return normalized.strip()


def strip_markup(text: str) -> str:
    """Remove HTML tags and entities that board platforms wrap card content in."""

    return html.unescape(_TAG_RE.sub(" ", text or ""))


def comparison_key(text: str) -> str:
    """Key used to decide whether two card texts are the same point."""

    normalized = unicodedata.normalize("NFC", strip_markup(text))
    return " ".join(normalized.casefold().split())


__all__ = ["comparison_key", "normalize_text", "strip_markup"]
