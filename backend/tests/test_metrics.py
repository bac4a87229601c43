"""Tests for metrics and event helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict

from app.observability import client as opik_client
from app.observability import metrics
from app.observability.events import emit_event


class _DummyTrace:
    def __init__(self, name: str, metadata: Dict[str, Any]):
        self.name = name
        self.metadata = metadata
        self.ended = False

    def end(self) -> None:
        self.ended = True


class _DummyClient:
    def __init__(self):
        self.traces: list[_DummyTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        trace = _DummyTrace(name, metadata or {})
        self.traces.append(trace)
        return trace


def test_log_metric_closes_trace(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: dummy_client)

    metrics.log_metric("plan.generated", 3, metadata={"method": "ai"})

    assert dummy_client.traces, "Metric call should record a trace"
    assert dummy_client.traces[0].name == "metric:plan.generated"
    assert dummy_client.traces[0].metadata == {"value": 3, "method": "ai"}
    assert dummy_client.traces[0].ended is True


def test_log_metric_is_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: None)

    metrics.log_metric("plan.generated", 1)


def test_emit_event_logs_and_counts(monkeypatch, caplog) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: dummy_client)

    with caplog.at_level(logging.WARNING, logger="app.events"):
        emit_event("plan.task_skipped", level=logging.WARNING, week=2, goal_index=None, reason=object())

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.event == "plan.task_skipped"
    assert record.event_fields["week"] == 2
    assert "week=2" in record.getMessage()
    metadata = dummy_client.traces[0].metadata
    assert metadata["value"] == 1
    assert metadata["goal_index"] is None
    assert isinstance(metadata["reason"], str)
