"""Declarative base plus every ORM model, registered on import."""

from app.db.base import Base
from app.db import models  # noqa: F401  (registers dreams, goals, tasks, ...)

__all__ = ["Base", "models"]
