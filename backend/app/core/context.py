"""Per-request context utilities."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
dream_id_ctx_var: ContextVar[str | None] = ContextVar("dream_id", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_dream_id() -> str | None:
    """Return the dream currently being planned, if any."""
    return dream_id_ctx_var.get()


@contextmanager
def bind_dream(dream_id) -> Iterator[None]:
    """Tag log records emitted inside the block with ``dream_id``."""
    token = dream_id_ctx_var.set(str(dream_id) if dream_id else None)
    try:
        yield
    finally:
        dream_id_ctx_var.reset(token)
