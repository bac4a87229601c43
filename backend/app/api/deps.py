"""Request-scoped dependencies shared by the dream routes."""
from __future__ import annotations

from datetime import date
from typing import Optional

from app.services.plan_generator import PlanProvider, default_plan_provider


def get_today() -> date:
    """Calendar day used for scheduling; tests override it."""
    return date.today()


def get_plan_provider() -> Optional[PlanProvider]:
    return default_plan_provider()
