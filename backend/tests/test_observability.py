"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib
import logging

from app.core.context import bind_dream, get_dream_id
from app.core.logging import RequestContextFilter


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


def test_bind_dream_tags_log_records() -> None:
    record = logging.LogRecord("app", logging.INFO, __file__, 1, "hello", None, None)

    with bind_dream("dream-123"):
        assert get_dream_id() == "dream-123"
        RequestContextFilter().filter(record)

    assert record.dream_id == "dream-123"
    assert record.request_id == "-"
    assert get_dream_id() is None
