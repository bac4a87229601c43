"""Bring generator output into the canonical ``{goals, weeks}`` plan shape.

Two input shapes are accepted:

* ``SCALABLE`` plans already carry ``weeks``; each week lists tasks that point
  at a goal through ``goalIndex``.
* ``LEGACY`` plans only carry ``goals`` (optionally with embedded tasks) and
  are spread over three weeks.

Both paths return a fresh dict; the input is never mutated.
"""
from __future__ import annotations

import copy
import logging
import math
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator

from app.core.errors import MalformedPlanError
from app.observability.events import emit_event
from app.services.day_scheduler import normalize_day_code, round_robin_day

logger = logging.getLogger(__name__)

LEGACY_WEEK_COUNT = 3
DEFAULT_EST_TIME = 30
LEGACY_FOCUS_EST_TIME = 60
DEFAULT_RATIONALE = "This task contributes to your journey towards your dream"
DEFAULT_SKILL_CATEGORY = "general"
DEFAULT_DIFFICULTY = "beginner"


class PlanShape(str, Enum):
    LEGACY = "legacy"
    SCALABLE = "scalable"


class PlanTaskEntry(BaseModel):
    """Canonical task entry; unknown keys such as ``title`` pass through untouched."""

    model_config = ConfigDict(extra="allow")

    goalIndex: int = Field(default=0, validate_default=True)
    estTime: int = Field(default=DEFAULT_EST_TIME, description="Minutes, taken from estTime or duration.")
    day: Optional[str] = Field(default=None, validate_default=True)
    rationale: str = Field(default=DEFAULT_RATIONALE, validate_default=True)
    skillCategory: str = Field(default=DEFAULT_SKILL_CATEGORY, validate_default=True)
    difficultyLevel: str = Field(default=DEFAULT_DIFFICULTY, validate_default=True)

    @model_validator(mode="before")
    @classmethod
    def resolve_est_time(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        resolved = dict(data)
        resolved["estTime"] = _resolve_est_time(data)
        return resolved

    @field_validator("goalIndex", mode="before")
    @classmethod
    def coerce_goal_index(cls, value: Any) -> int:
        return _coerce_int(value, default=0)

    @field_validator("day", mode="before")
    @classmethod
    def schedule_day(cls, value: Any, info: ValidationInfo) -> str:
        position = (info.context or {}).get("position", 0)
        return normalize_day_code(value) or round_robin_day(position)

    @field_validator("rationale", "skillCategory", "difficultyLevel", mode="before")
    @classmethod
    def replace_blank_text(cls, value: Any, info: ValidationInfo) -> str:
        return _non_empty_text(value, _TEXT_DEFAULTS[info.field_name])


_TEXT_DEFAULTS = {
    "rationale": DEFAULT_RATIONALE,
    "skillCategory": DEFAULT_SKILL_CATEGORY,
    "difficultyLevel": DEFAULT_DIFFICULTY,
}


def classify_plan_shape(raw: Any) -> PlanShape:
    """Decide which conversion applies, or reject the plan outright."""
    if not isinstance(raw, Mapping):
        raise MalformedPlanError("Plan must be a JSON object.", {"type": type(raw).__name__})

    goals = raw.get("goals")
    if not isinstance(goals, list) or not goals:
        raise MalformedPlanError("Plan must contain a non-empty goals list.")

    weeks = raw.get("weeks")
    if weeks is None:
        return PlanShape.LEGACY
    if not isinstance(weeks, list):
        raise MalformedPlanError("Plan weeks must be a list.", {"type": type(weeks).__name__})
    return PlanShape.SCALABLE


def normalize_plan(raw: Any) -> Dict[str, Any]:
    shape = classify_plan_shape(raw)
    emit_event(
        "plan.shape_detected",
        shape=shape.value,
        goals=len(raw["goals"]),
        weeks=len(raw.get("weeks") or []),
    )

    if shape is PlanShape.SCALABLE:
        plan = _normalize_scalable(raw)
    else:
        plan = _convert_legacy(raw)

    if not any(week["tasks"] for week in plan["weeks"]):
        raise MalformedPlanError("Plan does not contain any tasks.", {"shape": shape.value})
    return plan


def _normalize_scalable(raw: Mapping[str, Any]) -> Dict[str, Any]:
    plan = {key: copy.deepcopy(value) for key, value in raw.items() if key not in {"goals", "weeks"}}
    plan["goals"] = copy.deepcopy(list(raw["goals"]))

    weeks: List[Dict[str, Any]] = []
    for position, week in enumerate(raw["weeks"], start=1):
        if not isinstance(week, Mapping):
            logger.warning("Dropping week %s: expected an object, got %s", position, type(week).__name__)
            continue
        week_number = _coerce_int(week.get("week"), default=position)
        if week_number < 1:
            week_number = position
        entries = week.get("tasks")
        tasks = entries if isinstance(entries, list) else []
        normalized_week: Dict[str, Any] = {
            "week": week_number,
            "theme": week.get("theme") or f"Week {week_number}",
            "tasks": [_with_task_defaults(task, idx) for idx, task in enumerate(tasks) if isinstance(task, Mapping)],
        }
        if week.get("focus"):
            normalized_week["focus"] = week["focus"]
        weeks.append(normalized_week)

    plan["weeks"] = weeks
    return plan


def _convert_legacy(raw: Mapping[str, Any]) -> Dict[str, Any]:
    goals = copy.deepcopy(list(raw["goals"]))
    goals_per_week = math.ceil(len(goals) / LEGACY_WEEK_COUNT)

    weeks: List[Dict[str, Any]] = []
    for week_number in range(1, LEGACY_WEEK_COUNT + 1):
        start = (week_number - 1) * goals_per_week
        end = min(start + goals_per_week, len(goals))
        week_tasks: List[Dict[str, Any]] = []

        for goal_index in range(start, end):
            goal = goals[goal_index] if isinstance(goals[goal_index], Mapping) else {}
            embedded = goal.get("tasks")
            if isinstance(embedded, list) and embedded:
                for task_position, task in enumerate(embedded):
                    if not isinstance(task, Mapping):
                        continue
                    week_tasks.append(_flatten_embedded_task(task, goal_index, task_position))
            else:
                title = goal.get("title") or "Goal"
                week_tasks.append(
                    {
                        "goalIndex": goal_index,
                        "title": f"Focus on {title}",
                        "estTime": LEGACY_FOCUS_EST_TIME,
                        "day": round_robin_day(len(week_tasks)),
                        "rationale": goal.get("description") or f"Work on {title} to advance your dream",
                    }
                )

        weeks.append(
            {
                "week": week_number,
                "theme": f"Week {week_number} Goals",
                "tasks": [_with_task_defaults(task, idx) for idx, task in enumerate(week_tasks)],
            }
        )

    plan = {key: copy.deepcopy(value) for key, value in raw.items() if key not in {"goals", "weeks"}}
    plan["goals"] = goals
    plan["weeks"] = weeks
    return plan


def _flatten_embedded_task(task: Mapping[str, Any], goal_index: int, position: int) -> Dict[str, Any]:
    flattened: Dict[str, Any] = {
        "goalIndex": goal_index,
        "title": task.get("name") or task.get("title"),
        "day": normalize_day_code(task.get("day")) or round_robin_day(position),
    }
    for key in ("estTime", "duration", "rationale", "skillCategory", "difficultyLevel", "metricsImpacted"):
        if task.get(key) is not None:
            flattened[key] = copy.deepcopy(task[key])
    return flattened


def _with_task_defaults(task: Mapping[str, Any], position: int) -> Dict[str, Any]:
    """Fill every field the materializer relies on; names are resolved later."""
    try:
        entry = PlanTaskEntry.model_validate(copy.deepcopy(dict(task)), context={"position": position})
    except ValidationError as exc:
        raise MalformedPlanError("Plan task failed validation.", {"errors": exc.error_count()}) from exc
    return entry.model_dump()


def _resolve_est_time(task: Mapping[str, Any]) -> int:
    for key in ("estTime", "duration"):
        minutes = _coerce_positive_int(task.get(key))
        if minutes is not None:
            return minutes
    return DEFAULT_EST_TIME


def _coerce_positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = int(float(str(value).strip().split()[0]))
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    return number if number > 0 else None


def _coerce_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool) or value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _non_empty_text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default
