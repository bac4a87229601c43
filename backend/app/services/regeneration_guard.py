"""Retire a dream's live plan so a regeneration starts from a clean slate."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List
from uuid import UUID

from sqlalchemy import delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConcurrentPlanGenerationError, PersistenceWriteError
from app.db.models.agent_action_log import AgentActionLog
from app.db.models.dream import Dream
from app.db.models.dream_discovery import DreamDiscovery
from app.db.models.goal import Goal
from app.db.models.task import Task

logger = logging.getLogger(__name__)


@dataclass
class RetiredPlan:
    goal_ids: List[UUID]
    goals_deleted: int
    tasks_deleted: int


def retire_existing_plan(db: Session, dream: Dream) -> RetiredPlan:
    """Delete the plan's tasks and goals, reset the dream flags and commit.

    Besides the goals listed on the dream this removes every goal and task
    tagged with the dream id, which covers reflection tasks and rows left by
    an aborted run. The discovery projection goes too, so a failed rebuild
    never leaves one pointing at deleted goals.
    """
    dream_id = dream.id
    goal_ids = list(dream.goal_ids or [])

    try:
        task_filter = Task.dream_id == dream.id
        goal_filter = Goal.dream_id == dream.id
        if goal_ids:
            task_filter = or_(task_filter, Task.goal_id.in_(goal_ids))
            goal_filter = or_(goal_filter, Goal.id.in_(goal_ids))

        tasks_deleted = db.execute(delete(Task).where(task_filter).execution_options(synchronize_session=False)).rowcount
        goals_deleted = db.execute(delete(Goal).where(goal_filter).execution_options(synchronize_session=False)).rowcount
        projections_deleted = db.execute(
            delete(DreamDiscovery)
            .where(DreamDiscovery.dream_id == dream.id)
            .execution_options(synchronize_session=False)
        ).rowcount

        dream.goal_ids = []
        dream.plan_generated = False
        dream.plan_generated_at = None
        db.add(
            AgentActionLog(
                user_id=dream.user_id,
                dream_id=dream.id,
                action_type="dream_plan_retired",
                action_payload={
                    "goal_ids": [str(goal_id) for goal_id in goal_ids],
                    "goals_deleted": goals_deleted,
                    "tasks_deleted": tasks_deleted,
                    "projections_deleted": projections_deleted,
                    "previous_method": dream.plan_method,
                },
                reason="Plan regeneration requested",
            )
        )
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrentPlanGenerationError(dream_id) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to retire existing plan")
        raise PersistenceWriteError("Failed to retire the existing plan.", {"dream_id": str(dream_id)}) from exc

    logger.info("Retired plan: %s goals, %s tasks deleted", goals_deleted, tasks_deleted)
    return RetiredPlan(goal_ids=goal_ids, goals_deleted=goals_deleted, tasks_deleted=tasks_deleted)
