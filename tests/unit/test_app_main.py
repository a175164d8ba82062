"""
Unit tests for the application wiring: lifespan, health check, OpenAPI and the token sweep.
"""

import asyncio
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from trustgraph.api.dependencies import Components
from trustgraph.api.main import app, sweep_expired_tokens
from trustgraph.config.settings import get_settings
from trustgraph.domain.exceptions import ConfigurationError


@pytest.fixture
def memory_app(monkeypatch: pytest.MonkeyPatch, session_secret: str):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("BCRYPT_COST", "4")
    monkeypatch.setenv("SESSION_SECRET", session_secret)
    monkeypatch.setenv("TOKEN_SWEEP_INTERVAL_SECONDS", "0")
    get_settings.cache_clear()
    yield app
    get_settings.cache_clear()


class TestLifespan:
    def test_memory_backend_wires_components(self, memory_app) -> None:
        with TestClient(memory_app):
            assert isinstance(memory_app.state.components, Components)
            assert memory_app.state.pool is None

    def test_health_check(self, memory_app) -> None:
        with TestClient(memory_app) as client:
            response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_startup_fails_without_session_secret(self, memory_app, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SESSION_SECRET")
        get_settings.cache_clear()

        with pytest.raises(ConfigurationError, match="SESSION_SECRET"):
            with TestClient(memory_app):
                pass

    def test_shutdown_waits_for_sweep_cancellation(self, memory_app, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOKEN_SWEEP_INTERVAL_SECONDS", "3600")
        get_settings.cache_clear()
        started, finished = [], []

        async def sweep(tokens, interval_seconds: int) -> None:
            started.append(interval_seconds)
            try:
                await asyncio.sleep(interval_seconds)
            finally:
                finished.append(True)

        monkeypatch.setattr("trustgraph.api.main.sweep_expired_tokens", sweep)
        with TestClient(memory_app) as client:
            assert client.get("/health").status_code == 200

        assert started == [3600]
        assert finished == [True]


class TestOpenAPI:
    def test_v1_paths_documented(self, memory_app) -> None:
        with TestClient(memory_app) as client:
            schema = client.get("/openapi.json").json()

        for path in ("/v1/signup", "/v1/verify", "/v1/login", "/v1/users/me", "/v1/users/{account_id}/follow"):
            assert path in schema["paths"]
        assert schema["components"]["securitySchemes"]["HTTPBearer"]["scheme"] == "bearer"


class TestTokenSweep:
    def test_sweep_runs_and_survives_errors(self) -> None:
        tokens = Mock()
        tokens.sweep_expired.side_effect = lambda: _fail_first(tokens.sweep_expired)

        async def run() -> None:
            task = asyncio.create_task(sweep_expired_tokens(tokens, 0))
            while tokens.sweep_expired.call_count < 2:
                await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        assert tokens.sweep_expired.call_count >= 2


def _fail_first(sweep: Mock) -> int:
    if sweep.call_count == 1:
        raise RuntimeError("db down")
    return 0
