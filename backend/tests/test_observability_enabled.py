from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_plan_provider, get_today
from app.db.base import Base
from app.db.deps import get_db
from app.main import app
from app.observability import client as client_module


class _DummyTrace:
    def __init__(self, name, metadata=None):
        self.name = name
        self.metadata = metadata or {}
        self.ended = False
        self.error_info = None
        self.spans = []

    def span(self, name, metadata=None, **kwargs):
        child = _DummyTrace(name, metadata)
        self.spans.append(child)
        return child

    def update(self, error_info=None, **kwargs):
        self.error_info = error_info

    def end(self):
        self.ended = True


class _DummyOpik:
    def __init__(self, *args, **kwargs):
        self.traces = []

    def trace(self, name, metadata=None, **kwargs):
        trace = _DummyTrace(name, metadata)
        self.traces.append(trace)
        return trace


@pytest.fixture()
def opik_client(monkeypatch):
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", "test-key")
    client_module.reset_opik_client()
    yield client_module.init_opik()
    client_module.reset_opik_client()


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover - sqlite setup
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: date(2024, 1, 10)
    app.dependency_overrides[get_plan_provider] = lambda: None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_plan_generation_is_traced(opik_client, client):
    user_id = uuid4()
    created = client.post(
        "/dreams",
        json={
            "user_id": str(user_id),
            "dream_text": "Teach yoga classes on weekends",
            "confidence": 50,
            "time_horizon": 2,
            "learning_style": "kinesthetic",
            "time_commitment": "flexible-flow",
        },
    )
    dream_id = created.json()["id"]

    response = client.post(
        f"/dreams/{dream_id}/generate-plan",
        json={"user_id": str(user_id)},
        headers={"X-Request-Id": "trace-me"},
    )

    assert response.status_code == 200
    by_name = {trace.name: trace for trace in opik_client.traces}
    pipeline = by_name["dream.generate_plan"]
    assert pipeline.metadata["dream_id"] == dream_id
    assert pipeline.metadata["request_id"] == "trace-me"
    assert pipeline.metadata["user_id"] == str(user_id)
    assert pipeline.ended is True
    assert by_name["metric:plan.fallback_triggered"].metadata["reason"] == "provider_not_configured"
    assert "metric:plan.goal_created" in by_name
    assert "metric:plan.generate.latency_ms" in by_name


def test_failed_generation_marks_trace_with_error(opik_client, client):
    response = client.post(f"/dreams/{uuid4()}/generate-plan", json={"user_id": str(uuid4())})

    assert response.status_code == 404
    pipeline = next(trace for trace in opik_client.traces if trace.name == "dream.generate_plan")
    assert pipeline.error_info["type"] == "DreamNotFoundError"
    success = next(trace for trace in opik_client.traces if trace.name == "metric:plan.generate.success")
    assert success.metadata["value"] == 0


class _PlanProvider:
    def generate(self, request):
        return {
            "plan": {
                "goals": [{"title": "Teach a class"}],
                "weeks": [{"week": 1, "theme": "Start", "tasks": [{"goalIndex": 0, "title": "Plan a flow"}]}],
            },
            "provider": "fake",
            "model": "fake-1",
            "method": "ai",
        }


def test_provider_call_is_a_span_of_the_pipeline_trace(opik_client, client):
    app.dependency_overrides[get_plan_provider] = lambda: _PlanProvider()
    user_id = uuid4()
    created = client.post(
        "/dreams",
        json={
            "user_id": str(user_id),
            "dream_text": "Teach yoga classes on weekends",
            "confidence": 50,
            "time_horizon": 2,
            "learning_style": "kinesthetic",
            "time_commitment": "flexible-flow",
        },
    )

    response = client.post(f"/dreams/{created.json()['id']}/generate-plan", json={"user_id": str(user_id)})

    assert response.status_code == 200
    pipeline = next(trace for trace in opik_client.traces if trace.name == "dream.generate_plan")
    assert [span.name for span in pipeline.spans] == ["plan.generate"]
    assert pipeline.spans[0].metadata["dream_id"] == created.json()["id"]
    assert pipeline.spans[0].ended is True
    assert all(trace.name != "plan.generate" for trace in opik_client.traces)
