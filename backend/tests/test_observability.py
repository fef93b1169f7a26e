"""Tests ensuring streak engine tracing stays inert without Opik credentials."""
from __future__ import annotations

import importlib

import pytest
from fastapi.routing import APIRoute


def _reload_with_env(monkeypatch, **env):
    for key, value in env.items():
        if value is None:
            monkeypatch.delenv(key, raising=False)
        else:
            monkeypatch.setenv(key, value)

    import app.core.config as core_config
    import app.observability.client as client_module

    importlib.reload(core_config)
    client_module = importlib.reload(client_module)
    client_module.reset_opik_client()
    return client_module


def test_app_serves_engine_routes_when_opik_is_disabled(monkeypatch) -> None:
    _reload_with_env(monkeypatch, OPIK_ENABLED="false", OPIK_API_KEY=None)

    import app.main as main_module

    reloaded = importlib.reload(main_module)
    paths = {route.path for route in reloaded.app.routes if isinstance(route, APIRoute)}

    assert {"/tasks/{task_id}/complete", "/habits/{habit_id}/tick", "/notifications/config"} <= paths


def test_enabled_without_api_key_skips_client(monkeypatch) -> None:
    client_module = _reload_with_env(monkeypatch, OPIK_ENABLED="true", OPIK_API_KEY=None)

    assert client_module.init_opik() is None
    assert client_module.get_opik_client() is None


def test_completion_trace_is_a_passthrough_without_client(monkeypatch) -> None:
    from app.observability import metrics, tracing

    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    with tracing.trace("completion.task", metadata={"kind": "TASK"}, user_id=7, request_id="req-1") as span:
        assert span is None
    metrics.log_metric("completion.task.success", 1, metadata={"kind": "TASK"})

    with pytest.raises(RuntimeError):
        with tracing.trace("completion.habit", user_id=7):
            raise RuntimeError("tick failed")
