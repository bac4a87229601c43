"""Persist a canonical plan as weekly Goal rows and their Task rows."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import EmptyMaterializationError, PersistenceWriteError, TaskNameUnresolvableError
from app.db.models.goal import Goal
from app.db.models.task import DIFFICULTY_LEVELS, IMPACT_LEVELS, Task
from app.observability.events import emit_event
from app.services.day_scheduler import SUNDAY, correct_past_day, normalize_day_code, week_start_date

logger = logging.getLogger(__name__)

REFLECTION_WEEKS = 3
JOURNEY_CATEGORY = "journey"
DEFAULT_METRIC_IMPACT = {
    "metric": "commitment",
    "expectedImpact": "medium",
    "reasoning": "Taking action builds commitment to your goals",
}
DEFAULT_RATIONALE = "This task contributes to your journey towards your dream"


def resolve_task_name(task: Mapping[str, Any]) -> Tuple[str, Optional[int]]:
    """Return the task name and, when the entry carries one, its duration.

    Handles ``{"title": "..."}``/``{"name": "..."}``, a nested
    ``{"title": {"activity": "..."}}`` and a flat ``{"activity": ..., "duration": ...}``.
    """
    title = task.get("title")
    if isinstance(title, Mapping):
        activity = title.get("activity")
        if isinstance(activity, str) and activity.strip():
            return activity.strip(), _minutes(task.get("duration"))
        raise TaskNameUnresolvableError(task)

    activity = task.get("activity")
    if not title and isinstance(activity, str) and activity.strip():
        return activity.strip(), _minutes(task.get("duration"))

    for candidate in (title, task.get("name")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip(), _minutes(task.get("duration"))
    raise TaskNameUnresolvableError(task)


@dataclass
class GoalLayout:
    goal_index: int
    title: str
    description: Optional[str]
    tasks: List[Tuple[Mapping[str, Any], str, Optional[int]]]


@dataclass
class WeekLayout:
    week_number: int
    theme: str
    goals: List[GoalLayout] = field(default_factory=list)


def layout_plan(plan: Mapping[str, Any]) -> List[WeekLayout]:
    """Resolve task names and goal groups without touching the database."""
    goals: List[Any] = plan.get("goals") or []
    layout: List[WeekLayout] = []
    for position, week in enumerate(plan.get("weeks") or [], start=1):
        if not isinstance(week, Mapping):
            continue
        week_number = _week_number(week.get("week"), position)
        week_layout = WeekLayout(week_number=week_number, theme=week.get("theme") or f"Week {week_number}")
        for goal_index, entries in _group_tasks_by_goal(week.get("tasks") or [], len(goals)):
            resolved = _resolve_group(entries, week_number)
            if not resolved:
                continue
            goal_entry = goals[goal_index] if isinstance(goals[goal_index], Mapping) else {}
            week_layout.goals.append(
                GoalLayout(
                    goal_index=goal_index,
                    title=f"{goal_entry.get('title') or 'Goal'} - Week {week_number}",
                    description=goal_entry.get("description"),
                    tasks=resolved,
                )
            )
        layout.append(week_layout)
    return layout


def materialize_plan(
    db: Session,
    *,
    user_id: UUID,
    dream,
    plan: Dict[str, Any],
    today: date,
    generation_method: str,
) -> List[UUID]:
    """Create goals and tasks for every week; returns goal ids in creation order.

    Rows are flushed, not committed: the caller owns the transaction. A plan
    in which no goal keeps a single resolvable task raises
    ``EmptyMaterializationError`` before anything is written.
    """
    layout = layout_plan(plan)
    if not any(week.goals for week in layout):
        raise EmptyMaterializationError()

    goal_ids: List[UUID] = []
    adaptive_base = {
        "generationMethod": "template_based" if generation_method in {"fallback", "template"} else "ai_generated",
        "timeCommitmentStyle": dream.time_commitment or "focused-blocks",
        "confidenceLevel": _confidence(dream.confidence),
    }

    try:
        for week in layout:
            week_of = week_start_date(today, week.week_number)

            for goal_layout in week.goals:
                goal = Goal(
                    user_id=user_id,
                    dream_id=dream.id,
                    title=goal_layout.title,
                    description=goal_layout.description,
                    week_of=week_of,
                    journey_week=week.week_number,
                    journey_theme=week.theme,
                    category=JOURNEY_CATEGORY,
                )
                db.add(goal)
                db.flush()

                task_ids: List[UUID] = []
                for entry, name, duration in goal_layout.tasks:
                    task = _build_task(
                        entry,
                        name=name,
                        duration=duration,
                        user_id=user_id,
                        dream_id=dream.id,
                        goal_id=goal.id,
                        goal_index=goal_layout.goal_index,
                        week_number=week.week_number,
                        today=today,
                        adaptive_base=adaptive_base,
                    )
                    db.add(task)
                    db.flush()
                    task_ids.append(task.id)

                goal.task_ids = task_ids
                db.flush()
                goal_ids.append(goal.id)
                emit_event(
                    "plan.goal_created",
                    goal_id=goal.id,
                    week=week.week_number,
                    goal_index=goal_layout.goal_index,
                    tasks=len(task_ids),
                )

            if week.week_number <= REFLECTION_WEEKS:
                db.add(_reflection_task(user_id, dream.id, week.week_number, adaptive_base))
                db.flush()
    except SQLAlchemyError as exc:
        logger.exception("Failed to persist plan goals")
        raise PersistenceWriteError(
            "Failed to persist the generated plan.",
            {"goals_written": len(goal_ids)},
        ) from exc

    return goal_ids


def _group_tasks_by_goal(tasks: List[Any], goal_count: int) -> List[Tuple[int, List[Mapping[str, Any]]]]:
    grouped: Dict[int, List[Mapping[str, Any]]] = {}
    for task in tasks:
        if not isinstance(task, Mapping):
            continue
        index = task.get("goalIndex")
        if isinstance(index, int) and 0 <= index < goal_count:
            grouped.setdefault(index, []).append(task)
    return sorted(grouped.items())


def _resolve_group(entries: List[Mapping[str, Any]], week_number: int) -> List[Tuple[Mapping[str, Any], str, Optional[int]]]:
    resolved = []
    for entry in entries:
        try:
            name, duration = resolve_task_name(entry)
        except TaskNameUnresolvableError as exc:
            emit_event(
                "plan.task_skipped",
                level=logging.WARNING,
                week=week_number,
                goal_index=entry.get("goalIndex"),
                reason=exc.code,
            )
            continue
        resolved.append((entry, name, duration))
    return resolved


def _build_task(
    entry: Mapping[str, Any],
    *,
    name: str,
    duration: Optional[int],
    user_id: UUID,
    dream_id: UUID,
    goal_id: UUID,
    goal_index: int,
    week_number: int,
    today: date,
    adaptive_base: Dict[str, Any],
) -> Task:
    day = normalize_day_code(entry.get("day")) or "Mon"
    corrected = correct_past_day(day, today)
    if corrected != day:
        logger.info("Moved task %r from past day %s to %s", name, day, corrected)

    title = entry.get("title")
    description = entry.get("description")
    if description is None and isinstance(title, Mapping):
        description = title.get("description")

    return Task(
        user_id=user_id,
        goal_id=goal_id,
        dream_id=dream_id,
        name=name,
        description=description if isinstance(description, str) else None,
        est_time=_minutes(entry.get("estTime")) or duration or 30,
        day=corrected,
        rationale=_text(entry.get("rationale"), DEFAULT_RATIONALE),
        skill_category=_text(entry.get("skillCategory"), "general"),
        difficulty_level=_choice(entry.get("difficultyLevel"), DIFFICULTY_LEVELS, "beginner"),
        metrics_impacted=_metric_impacts(entry.get("metricsImpacted")),
        adaptive_metadata={**adaptive_base, "archetypeContext": entry.get("archetypeContext") or "general"},
        goal_index=goal_index,
        week_number=week_number,
    )


def _reflection_task(user_id: UUID, dream_id: UUID, week_number: int, adaptive_base: Dict[str, Any]) -> Task:
    return Task(
        user_id=user_id,
        goal_id=None,
        dream_id=dream_id,
        name=f"Week {week_number} Reflection: Review progress and insights",
        est_time=30,
        day=SUNDAY,
        is_reflection=True,
        rationale=(
            f"Reflecting on week {week_number} consolidates what you learned "
            "and shapes the plan for the weeks ahead"
        ),
        skill_category="self_assessment",
        difficulty_level="beginner",
        metrics_impacted=[
            {
                "metric": "clarity",
                "expectedImpact": "high",
                "reasoning": "Reflection clarifies what worked and what needs adjustment",
            },
            {
                "metric": "commitment",
                "expectedImpact": "medium",
                "reasoning": "Taking time to reflect reinforces commitment to your journey",
            },
        ],
        adaptive_metadata={**adaptive_base, "archetypeContext": "general"},
        goal_index=None,
        week_number=week_number,
    )


def _metric_impacts(raw: Any) -> List[Dict[str, str]]:
    impacts: List[Dict[str, str]] = []
    if isinstance(raw, list):
        for item in raw:
            # Goal-level lists sometimes hold bare metric names.
            if isinstance(item, str) and item.strip():
                item = {"metric": item.strip()}
            if not isinstance(item, Mapping) or not item.get("metric"):
                continue
            impacts.append(
                {
                    "metric": str(item["metric"]),
                    "expectedImpact": _choice(item.get("expectedImpact"), IMPACT_LEVELS, "medium"),
                    "reasoning": _text(item.get("reasoning"), DEFAULT_METRIC_IMPACT["reasoning"]),
                }
            )
    return impacts or [dict(DEFAULT_METRIC_IMPACT)]


def _minutes(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        minutes = int(float(str(value).strip().split()[0]))
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    return minutes if minutes > 0 else None


def _week_number(value: Any, position: int) -> int:
    if isinstance(value, bool):
        return position
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return position
    return number if number > 0 else position


def _confidence(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 50


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _choice(value: Any, allowed: Tuple[str, ...], default: str) -> str:
    if isinstance(value, str) and value.lower() in allowed:
        return value.lower()
    return default
