"""Tracing utilities wrapping Opik.

The outermost ``trace()`` opens an Opik trace; a ``trace()`` entered while
another is active becomes a span of it, so one plan run shows up as a single
trace with its provider call nested inside.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from app.core.context import get_dream_id, get_request_id
from app.observability import client as opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_active_trace: ContextVar[Optional[Any]] = ContextVar("active_opik_trace", default=None)


def _trace_metadata(
    metadata: Optional[Dict[str, Any]],
    user_id: Optional[str],
    request_id: Optional[str],
) -> Dict[str, Any]:
    merged = dict(metadata or {})
    if user_id:
        merged.setdefault("user_id", str(user_id))
    request_id = request_id or get_request_id()
    if request_id:
        merged.setdefault("request_id", request_id)
    dream_id = get_dream_id()
    if dream_id:
        merged.setdefault("dream_id", dream_id)
    return merged


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Open an Opik trace, or a span when a trace is already active.

    Request id, user id and the dream bound with ``bind_dream`` are attached
    to the metadata. When Opik is disabled or unavailable the context is a no-op.
    """
    client = opik_client.get_opik_client()
    opik_trace: Optional["Trace"] = None

    if client:
        trace_metadata = _trace_metadata(metadata, user_id, request_id) or None
        parent = _active_trace.get()
        try:
            if parent is not None:
                opik_trace = parent.span(name=name, metadata=trace_metadata)
            else:
                opik_trace = client.trace(name=name, metadata=trace_metadata)
        except Exception as exc:  # pragma: no cover - SDK guard
            logger.debug("Unable to start Opik trace %s: %s", name, exc)
            opik_trace = None

    token = _active_trace.set(opik_trace) if opik_trace is not None else None
    try:
        yield opik_trace
    except Exception as exc:
        if opik_trace:
            try:
                opik_trace.update(error_info={"message": str(exc), "type": type(exc).__name__})
            except Exception:  # pragma: no cover
                logger.debug("Failed to attach error info to Opik trace %s", name, exc_info=True)
        raise
    finally:
        if token is not None:
            _active_trace.reset(token)
        if opik_trace:
            try:
                opik_trace.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)
