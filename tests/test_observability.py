"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib
from uuid import uuid4

from tests.fakes import auth_headers


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


def test_enabled_without_api_key_stays_disabled(monkeypatch) -> None:
    import app.observability.client as client_module

    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", None)
    client_module.reset_opik()
    try:
        assert client_module.init_opik() is None
    finally:
        client_module.reset_opik()


def test_traced_routes_work_without_opik(client) -> None:
    headers = auth_headers(uuid4())

    created = client.post("/tasks", json={"title": "추적 없이"}, headers=headers)
    board = client.get("/board", headers=headers)

    assert created.status_code == 201
    assert board.status_code == 200
