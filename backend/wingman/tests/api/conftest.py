from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from wingman.api.deps import get_engine
from wingman.api.main import create_app
from wingman.infra.db.tables import metadata


@pytest.fixture()
def engine(tmp_path):
    db_path = tmp_path / "api_tests.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    metadata.create_all(engine)
    yield engine
    metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def app(engine, monkeypatch):
    monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)
    app = create_app(engine=engine)
    app.dependency_overrides[get_engine] = lambda: engine
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def api_client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def create_activity(api_client):
    def _create(host: str = "host", **overrides):
        payload = {"name": "Coffee at the medina", "location": {"lat": 36.7992, "lng": 10.1706}}
        payload.update(overrides)
        response = api_client.post("/api/activities", json=payload, headers={"X-User-Id": host})
        assert response.status_code == 201, response.text
        return response.json()

    return _create
