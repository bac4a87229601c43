"""Structured plan-pipeline events.

Events mark decision points (shape detected, fallback triggered, task skipped,
goal created). They are logged at the given level with their fields attached
to the record and counted as Opik metrics. Nothing reads them back.
"""
from __future__ import annotations

import logging
from typing import Any

from app.observability.metrics import log_metric

logger = logging.getLogger("app.events")


def emit_event(name: str, *, level: int = logging.INFO, **fields: Any) -> None:
    rendered = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
    logger.log(level, "%s %s", name, rendered, extra={"event": name, "event_fields": fields})
    log_metric(name, 1, {key: _metric_safe(value) for key, value in fields.items()})


def _metric_safe(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)
