from __future__ import annotations

import re
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client() -> TestClient:
    from src.api.main import app

    return TestClient(app)


def test_health_ok(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    request_id = response.headers.get("x-request-id")
    assert request_id is not None
    assert re.fullmatch(r"[0-9a-f]{32}", request_id) is not None


def test_health_preserves_incoming_request_id(client: TestClient) -> None:
    response = client.get("/health", headers={"x-request-id": "trace-abc-123"})
    assert response.status_code == 200
    assert response.headers.get("x-request-id") == "trace-abc-123"


def test_health_db_ok(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _ok() -> bool:
        return True

    monkeypatch.setattr("src.api.main.check_db_health", _ok)
    response = client.get("/health/db")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_db_unavailable(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _fail() -> bool:
        return False

    monkeypatch.setattr("src.api.main.check_db_health", _fail)
    response = client.get("/health/db")
    assert response.status_code == 503


def test_health_db_unavailable_body(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _fail() -> bool:
        return False

    monkeypatch.setattr("src.api.main.check_db_health", _fail)
    response = client.get("/health/db")
    assert response.json() == {"detail": "database unavailable"}


def test_lifespan_ensures_schema_and_disposes_engine(monkeypatch: pytest.MonkeyPatch) -> None:
    from src.api.main import app

    engine = MagicMock()
    ensure = AsyncMock()
    dispose = AsyncMock()
    monkeypatch.setattr("src.api.main.get_engine", lambda: engine)
    monkeypatch.setattr("src.api.main.ensure_schema", ensure)
    monkeypatch.setattr("src.api.main.dispose_engine", dispose)

    with TestClient(app) as client:
        ensure.assert_awaited_once_with(engine)
        dispose.assert_not_awaited()
        assert client.get("/health").status_code == 200
    dispose.assert_awaited_once()


def test_lifespan_skips_schema_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    from src.api.main import app
    from src.config import get_settings

    monkeypatch.setenv("ENSURE_SCHEMA_ON_STARTUP", "false")
    get_settings.cache_clear()
    ensure = AsyncMock()
    monkeypatch.setattr("src.api.main.ensure_schema", ensure)
    monkeypatch.setattr("src.api.main.dispose_engine", AsyncMock())

    with TestClient(app):
        pass
    ensure.assert_not_awaited()


def test_cors_preflight_allows_site_origin(client: TestClient) -> None:
    response = client.options(
        "/api/subscribe",
        headers={"Origin": "https://marcoswift.com", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://marcoswift.com"


def test_cors_preflight_rejects_other_origin(client: TestClient) -> None:
    response = client.options(
        "/api/subscribe",
        headers={"Origin": "https://spam.example", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers
