from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import barback.api.routes.health as health_route
from barback.api.container import SQL_BACKEND, build_memory_container
from barback.api.main import create_app


def _sql_mode_client() -> TestClient:
    return TestClient(create_app(replace(build_memory_container(), backend=SQL_BACKEND)))


def test_live_health_endpoint() -> None:
    client = TestClient(create_app(build_memory_container()))
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_health_endpoint_healthy_with_mocks(monkeypatch) -> None:
    monkeypatch.setattr(health_route, "ping_database", lambda timeout_seconds=1.0: True)
    monkeypatch.setattr(health_route, "ping_redis", lambda timeout_seconds=1.0: True)

    response = _sql_mode_client().get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "backend": "sql"}


def test_ready_health_endpoint_reports_failed_dependency(monkeypatch) -> None:
    monkeypatch.setattr(health_route, "ping_database", lambda timeout_seconds=1.0: True)
    monkeypatch.setattr(health_route, "ping_redis", lambda timeout_seconds=1.0: False)

    response = _sql_mode_client().get("/health/ready")

    assert response.status_code == 503
    assert response.json()["checks"] == {"database": True, "redis": False}
