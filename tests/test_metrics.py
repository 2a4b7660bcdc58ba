"""Tests for metrics and tracing helpers."""
from __future__ import annotations

from typing import Any, Dict

import pytest

from app.core.context import request_id_ctx_var, user_id_ctx_var
from app.observability import metrics
from app.observability import tracing


class _DummyTrace:
    def __init__(self, name: str, metadata: Dict[str, Any]):
        self.name = name
        self.metadata = metadata
        self.error_info: Dict[str, Any] | None = None
        self.ended = False

    def update(self, error_info: Dict[str, Any] | None = None, **kwargs) -> None:
        self.error_info = error_info

    def end(self) -> None:
        self.ended = True


class _DummyClient:
    def __init__(self):
        self.traces: list[_DummyTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        trace = _DummyTrace(name, metadata or {})
        self.traces.append(trace)
        return trace


@pytest.fixture()
def dummy_client(monkeypatch) -> _DummyClient:
    client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: client)
    return client


def test_log_metric_closes_trace(dummy_client) -> None:
    metrics.log_metric("demo_metric", 42, metadata={"foo": "bar"})

    assert dummy_client.traces, "Metric call should record a trace"
    assert dummy_client.traces[0].name == "metric:demo_metric"
    assert dummy_client.traces[0].metadata["value"] == 42
    assert dummy_client.traces[0].metadata["foo"] == "bar"
    assert dummy_client.traces[0].ended is True


def test_trace_picks_up_request_context(dummy_client) -> None:
    request_token = request_id_ctx_var.set("req-1")
    user_token = user_id_ctx_var.set("user-1")
    try:
        with tracing.trace("task.create", metadata={"route": "/tasks", "skipped": None}, workspace_id="ws-1"):
            pass
    finally:
        user_id_ctx_var.reset(user_token)
        request_id_ctx_var.reset(request_token)

    recorded = dummy_client.traces[0]
    assert recorded.metadata == {
        "route": "/tasks",
        "user_id": "user-1",
        "request_id": "req-1",
        "workspace_id": "ws-1",
    }
    assert recorded.ended is True


def test_trace_records_errors_and_reraises(dummy_client) -> None:
    with pytest.raises(ValueError):
        with tracing.trace("attachment.upload"):
            raise ValueError("bad file")

    recorded = dummy_client.traces[0]
    assert recorded.error_info == {"message": "bad file", "type": "ValueError"}
    assert recorded.ended is True


def test_trace_is_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    with tracing.trace("anything") as handle:
        assert handle is None
