"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib
from typing import Any, Dict, List

import pytest

from app.core.context import planner_user_ctx_var, request_id_ctx_var
from app.observability import tracing


class _RecordingTrace:
    def __init__(self, name: str, metadata: Dict[str, Any] | None):
        self.name = name
        self.metadata = metadata or {}
        self.errors: List[Dict[str, str]] = []
        self.ended = False

    def update(self, error_info=None, **kwargs) -> None:
        if error_info:
            self.errors.append(error_info)

    def end(self) -> None:
        self.ended = True


class _RecordingClient:
    def __init__(self):
        self.traces: List[_RecordingTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        recorded = _RecordingTrace(name, metadata)
        self.traces.append(recorded)
        return recorded


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import app.core.config as core_config
    import app.observability.client as client_module
    import app.main as main_module

    importlib.reload(core_config)
    importlib.reload(client_module)
    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")
    assert client_module.get_opik_client() is None


def test_trace_is_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    with tracing.trace("planner.optimize", metadata={"candidates": 3}) as opik_trace:
        assert opik_trace is None


def test_trace_stamps_request_context(monkeypatch) -> None:
    client = _RecordingClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: client)
    request_token = request_id_ctx_var.set("req-1")
    user_token = planner_user_ctx_var.set("alex")
    try:
        with tracing.trace("planner.process", metadata={"tasks": 4, "empty": None}):
            pass
    finally:
        planner_user_ctx_var.reset(user_token)
        request_id_ctx_var.reset(request_token)

    recorded = client.traces[0]
    assert recorded.metadata == {"tasks": 4, "user_id": "alex", "request_id": "req-1"}
    assert recorded.ended


def test_trace_records_errors_and_reraises(monkeypatch) -> None:
    client = _RecordingClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: client)

    with pytest.raises(ValueError):
        with tracing.trace("planner.enrich"):
            raise ValueError("bad estimate")

    assert client.traces[0].errors == [{"message": "bad estimate", "type": "ValueError"}]
    assert client.traces[0].ended
