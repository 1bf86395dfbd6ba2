from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from boardflow.board import InMemoryBoard, get_board
from boardflow.capture import encode_wav
from boardflow.errors import BoardUnavailableError
from boardflow.llm import MockTranscriptionProvider
from boardflow.main import app
from boardflow.pipeline import get_pipeline

from conftest import FlakyBoard, build_pipeline, sentence, tone


@pytest.fixture
def client(pipeline):
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_read_root_returns_ok() -> None:
    client = TestClient(app)
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "ok"


def test_healthz_returns_ok() -> None:
    response = TestClient(app).get("/healthz")

    assert response.status_code == 200
    assert response.text == "ok"


def test_readyz_pings_board() -> None:
    app.dependency_overrides[get_board] = lambda: InMemoryBoard()
    try:
        response = TestClient(app).get("/readyz")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.text == "ok"


def test_readyz_returns_503_when_board_unreachable() -> None:
    class UnreachableBoard(InMemoryBoard):
        async def ping(self) -> None:
            raise BoardUnavailableError("connection refused")

    app.dependency_overrides[get_board] = lambda: UnreachableBoard()
    try:
        response = TestClient(app).get("/readyz")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert "board_unavailable" in response.json()["detail"]


def test_points_endpoint_places_and_reports(client, board) -> None:
    response = client.post(
        "/sessions/abc/points",
        json={"points": ["Keep the tab bar visible", "Show unread badges"], "region": "Scores"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["session_id"] == "abc"
    assert payload["status"] == "completed"
    assert payload["placed"] == 2
    assert payload["cards_created"] == 2
    assert len(board.cards) == 2


def test_text_endpoint_segments_transcript(client, board) -> None:
    response = client.post(
        "/sessions/abc/text",
        json={"text": f"{sentence('Tabs')} {sentence('Search')}", "mode": "response"},
    )

    assert response.status_code == 200
    assert response.json()["placed"] == 1
    assert [region.title for region in board.regions.values()] == ["Analysis-Response"]


def test_text_endpoint_rejects_blank_and_unknown_mode(client) -> None:
    assert client.post("/sessions/abc/text", json={"text": "   "}).status_code == 422
    assert client.post("/sessions/abc/text", json={"text": "hello", "mode": "sketch"}).status_code == 422


def test_status_and_cancel_endpoints(client) -> None:
    assert client.get("/sessions/missing").status_code == 404
    assert client.post("/sessions/missing/cancel").status_code == 404

    client.post("/sessions/abc/points", json={"points": ["Keep the tab bar visible"], "region": "Scores"})

    status = client.get("/sessions/abc").json()
    assert status["status"] == "completed"
    assert status["progress"] == 100.0
    assert status["placed"] == 1

    cancel = client.post("/sessions/abc/cancel")
    assert cancel.status_code == 200
    assert cancel.json() == {"session_id": "abc", "cancelled": True}


def test_audio_endpoint_transcribes_upload(board, settings) -> None:
    transcriber = MockTranscriptionProvider(scripted=[sentence("Tabs"), sentence("Search")])
    pipeline = build_pipeline(board, settings, transcriber=transcriber)
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    try:
        response = TestClient(app).post(
            "/sessions/rec/audio",
            files={"file": ("meeting.wav", encode_wav(tone(1.0), 8000), "audio/wav")},
            data={"mode": "decision"},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    payload = response.json()
    assert payload["chunks"] == 2
    assert payload["placed"] == 2
    assert payload["no_content"] is False


def test_audio_endpoint_rejects_unreadable_upload(client) -> None:
    response = client.post(
        "/sessions/rec/audio",
        files={"file": ("meeting.wav", b"not a wav file", "audio/wav")},
    )

    assert response.status_code == 422


def test_points_endpoint_returns_503_when_board_down(settings) -> None:
    pipeline = build_pipeline(FlakyBoard(region_failures=1), settings)
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    try:
        response = TestClient(app).post("/sessions/abc/points", json={"points": ["Keep tabs"], "region": "Scores"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
