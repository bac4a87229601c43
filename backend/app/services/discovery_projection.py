"""Denormalized discovery read-model used by the journey visualization."""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import DiscoveryProjectionError
from app.db.models.dream_discovery import DreamDiscovery

logger = logging.getLogger(__name__)

PROGRESSION_BUCKETS = 3
DEFAULT_SUB_GOAL_TASKS = 4
DEFAULT_HABIT_TIPS = [
    "Focus on daily consistency to build momentum",
    "Track your progress to stay motivated",
    "Celebrate each milestone you achieve",
]


def build_discovery_projection(plan: Mapping[str, Any], goal_ids: Sequence[UUID]) -> Dict[str, Any]:
    weeks = [week for week in plan.get("weeks") or [] if isinstance(week, Mapping)]
    goals = plan.get("goals") or []
    goal_keys = [str(goal_id) for goal_id in goal_ids]

    week_themes = [week.get("theme") or f"Week {position}" for position, week in enumerate(weeks, start=1)]

    chunk = math.ceil(len(goal_keys) / PROGRESSION_BUCKETS) if goal_keys else 0
    goal_progression = {
        f"week{position}": {
            "focus": theme,
            "goalIds": goal_keys[(position - 1) * chunk : position * chunk],
        }
        for position, theme in enumerate(week_themes, start=1)
    }

    sub_goals: Dict[str, List[Any]] = {}
    for goal_key, goal in zip(goal_keys, goals):
        if not isinstance(goal, Mapping):
            continue
        sub_goals[goal_key] = _sub_goals_for(goal)

    habit_tips = plan.get("habitTips")
    if not isinstance(habit_tips, list) or not habit_tips:
        habit_tips = list(DEFAULT_HABIT_TIPS)

    milestones = [
        {
            "day": position * 7,
            "title": f"Week {position} Complete",
            "description": f"Completed {theme} phase",
        }
        for position, theme in enumerate(week_themes, start=1)
    ]

    return {
        "week_themes": week_themes,
        "goal_progression": goal_progression,
        "sub_goals": sub_goals,
        "habit_formation_tips": list(habit_tips),
        "milestones": milestones,
        "progress_tracking_metrics": {
            "totalGoals": len(goal_keys),
            "estimatedCompletionDays": len(weeks) * 7,
            "difficultyLevel": plan.get("difficultyLevel") or "intermediate",
        },
    }


def _sub_goals_for(goal: Mapping[str, Any]) -> List[Any]:
    milestones = goal.get("milestones")
    if isinstance(milestones, list) and milestones:
        return list(milestones)
    tasks = goal.get("tasks")
    task_count = len(tasks) if isinstance(tasks, list) else DEFAULT_SUB_GOAL_TASKS
    title = goal.get("title") or "Goal"
    return [f"Phase {phase}: {title} Progress" for phase in range(1, math.ceil(task_count / 3) + 1)]


def save_discovery_projection(
    db: Session,
    *,
    user_id: UUID,
    dream_id: UUID,
    plan: Mapping[str, Any],
    goal_ids: Sequence[UUID],
) -> DreamDiscovery | None:
    """Upsert the projection for (user, dream). Failures are logged, never raised."""
    try:
        with db.begin_nested():
            projection = build_discovery_projection(plan, goal_ids)
            record = db.execute(
                select(DreamDiscovery).where(
                    DreamDiscovery.user_id == user_id,
                    DreamDiscovery.dream_id == dream_id,
                )
            ).scalar_one_or_none()
            if record is None:
                record = DreamDiscovery(user_id=user_id, dream_id=dream_id)
                db.add(record)
            for field, value in projection.items():
                setattr(record, field, value)
            db.flush()
        return record
    except Exception as exc:
        error = DiscoveryProjectionError(
            "Failed to save discovery projection.",
            {"dream_id": str(dream_id), "error": str(exc)},
        )
        logger.warning("%s %s", error.message, error.details, exc_info=True)
        return None
