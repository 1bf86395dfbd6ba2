"""Board platform integrations."""

from __future__ import annotations

import logging

from boardflow.config import BoardSettings, get_settings
from boardflow.errors import BoardUnavailableError

from .base import CARD_ITEM, REGION_ITEM, BoardPlatform
from .gateway import BoardGateway
from .memory import InMemoryBoard
from .miro import MiroBoard, nearest_sticky_color

LOGGER = logging.getLogger(__name__)

_BOARD_SINGLETON: BoardPlatform | None = None


def create_board(settings: BoardSettings | None = None) -> BoardPlatform:
    """Instantiate the board backend selected by ``BOARD_BACKEND``."""

    settings = settings or get_settings().board
    backend = settings.backend
    if backend == "memory":
        return InMemoryBoard()
    if backend == "miro":
        return MiroBoard(settings)
    raise BoardUnavailableError(f"Unsupported board backend: {backend}")


def get_board() -> BoardPlatform:
    global _BOARD_SINGLETON
    if _BOARD_SINGLETON is None:
        _BOARD_SINGLETON = create_board()
        LOGGER.info("Initialised %s board backend", _BOARD_SINGLETON.name)
    return _BOARD_SINGLETON


def reset_board() -> None:
    global _BOARD_SINGLETON
    _BOARD_SINGLETON = None


__all__ = [
    "BoardGateway",
    "BoardPlatform",
    "CARD_ITEM",
    "InMemoryBoard",
    "MiroBoard",
    "REGION_ITEM",
    "create_board",
    "get_board",
    "nearest_sticky_color",
    "reset_board",
]
