from __future__ import annotations

from boardflow.config import GENERAL_REGION_NAMES, load_settings


def test_defaults_without_environment(monkeypatch) -> None:
    for name in (
        "BOARD_MIN_INTERVAL_MS",
        "BOARD_MAX_RETRIES",
        "RELEVANCE_MIN",
        "RELEVANCE_MAX",
        "CAPTURE_CHUNK_SECONDS",
        "BOARD_BACKEND",
        "LLM_PROVIDER",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.retry.min_interval == 0.1
    assert settings.retry.max_attempts == 3
    assert (settings.relevance.min_score, settings.relevance.max_score) == (1, 3)
    assert settings.board.backend == "memory"
    assert settings.llm.provider == "mock"
    assert settings.capture.chunk_seconds == 10.0
    assert settings.regions.general_names == GENERAL_REGION_NAMES
    assert "Thinking-Dialogue" in settings.regions.general_names


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("BOARD_MIN_INTERVAL_MS", "250")
    monkeypatch.setenv("BOARD_MAX_RETRIES", "5")
    monkeypatch.setenv("RELEVANCE_MAX", "5")
    monkeypatch.setenv("RELEVANCE_THRESHOLD", "3")
    monkeypatch.setenv("CAPTURE_CHUNK_SECONDS", "7.5")
    monkeypatch.setenv("BOARD_BACKEND", "Miro")
    monkeypatch.setenv("LLM_PROVIDER", "OpenAI")

    settings = load_settings()

    assert settings.retry.min_interval == 0.25
    assert settings.retry.max_attempts == 5
    assert settings.relevance.max_score == 5
    assert settings.relevance.threshold == 3
    assert settings.capture.chunk_seconds == 7.5
    assert settings.board.backend == "miro"
    assert settings.llm.provider == "openai"


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("BOARD_MAX_RETRIES", "many")
    monkeypatch.setenv("RELEVANCE_MIN", "4")
    monkeypatch.setenv("RELEVANCE_MAX", "2")

    settings = load_settings()

    assert settings.retry.max_attempts == 3
    assert (settings.relevance.min_score, settings.relevance.max_score) == (1, 3)
