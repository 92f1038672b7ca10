from __future__ import annotations

from fastapi.testclient import TestClient

from skillpath.main import app


def test_health_reports_agent_model(database) -> None:
    client = TestClient(app)
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["model"]


def test_database_health_endpoint_success(database) -> None:
    client = TestClient(app)
    response = client.get("/healthz/database")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_database_health_endpoint_failure(monkeypatch) -> None:
    client = TestClient(app)

    def raise_runtime_error():
        raise RuntimeError("missing database url")

    monkeypatch.setattr("skillpath.main.get_engine", raise_runtime_error)
    response = client.get("/healthz/database")
    assert response.status_code == 503
    assert response.json()["detail"] == "missing database url"
