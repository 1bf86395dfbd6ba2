import logging
from typing import Any, Callable, TypeVar

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from boardflow.api import sessions_router
from boardflow.board import get_board
from boardflow.errors import BoardUnavailableError
from boardflow.logging_config import configure_logging
from boardflow.telemetry import emit_app_startup_event

configure_logging()

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Boardflow API")
app.include_router(sessions_router)


@app.on_event("startup")
async def _startup_event() -> None:
    emit_app_startup_event()


T = TypeVar("T")


def _resolve_dependency(factory: Callable[[], T]) -> T:
    """Resolve a dependency while respecting FastAPI overrides."""

    override: Any | None = app.dependency_overrides.get(factory)
    resolved: Any = override if override is not None else factory
    return resolved() if callable(resolved) else resolved


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness probe used by container orchestrators."""
    return "ok"


@app.get("/readyz", response_class=PlainTextResponse)
async def readiness_probe() -> str:
    """Readiness probe that ensures the board platform is reachable."""

    try:
        board = _resolve_dependency(get_board)
        await board.ping()
    except BoardUnavailableError as exc:
        raise HTTPException(status_code=503, detail=f"board_unavailable: {exc}") from exc
    return "ok"
