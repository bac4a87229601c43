"""Dream intake and read API routes."""
from __future__ import annotations

from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.schemas.dream import (
    CurrentDayResponse,
    CurrentDayUpdateRequest,
    DreamCreateRequest,
    DreamDiscoveryResponse,
    DreamGoalsResponse,
    DreamResponse,
    DreamSummary,
    GoalPayload,
    TaskPayload,
)
from app.db.deps import get_db
from app.db.models.dream_discovery import DreamDiscovery
from app.db.models.goal import Goal
from app.db.models.task import Task
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.dream_intake import create_dream, list_active_dreams, load_dream, set_current_day

router = APIRouter()


@router.post("/dreams", response_model=DreamResponse, status_code=status.HTTP_201_CREATED, tags=["dreams"])
def create_dream_endpoint(
    payload: DreamCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> DreamResponse:
    """Store a new dream and its extracted archetype metadata."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "dream.intake",
        metadata={"route": "/dreams", "text_length": len(payload.dream_text), "time_horizon": payload.time_horizon},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        dream = create_dream(
            db,
            user_id=payload.user_id,
            dream_text=payload.dream_text,
            confidence=payload.confidence,
            time_horizon=payload.time_horizon,
            learning_style=payload.learning_style,
            time_commitment=payload.time_commitment,
            archetype_type=payload.archetype_type,
        )

    log_metric(
        "dream.intake.metadata_confidence",
        dream.archetype_data.get("parsingAccuracy", 0),
        metadata={"user_id": str(payload.user_id)},
    )
    return DreamResponse.model_validate(dream)


@router.get("/dreams/active", response_model=List[DreamResponse], tags=["dreams"])
def list_active_dreams_endpoint(
    user_id: UUID = Query(...),
    db: Session = Depends(get_db),
) -> List[DreamResponse]:
    return [DreamResponse.model_validate(dream) for dream in list_active_dreams(db, user_id)]


@router.get("/dreams/{dream_id}/goals", response_model=DreamGoalsResponse, tags=["dreams"])
def get_dream_goals_endpoint(
    dream_id: UUID,
    user_id: UUID = Query(...),
    db: Session = Depends(get_db),
) -> DreamGoalsResponse:
    """Return the live plan's goals in plan order, each with its tasks."""
    dream = load_dream(db, dream_id, user_id)
    goal_ids = list(dream.goal_ids or [])

    goals_by_id: Dict[UUID, Goal] = {}
    tasks_by_id: Dict[UUID, Task] = {}
    if goal_ids:
        goals_by_id = {goal.id: goal for goal in db.execute(select(Goal).where(Goal.id.in_(goal_ids))).scalars()}
        tasks = db.execute(select(Task).where(Task.goal_id.in_(goal_ids))).scalars()
        tasks_by_id = {task.id: task for task in tasks}

    goals: List[GoalPayload] = []
    for goal_id in goal_ids:
        goal = goals_by_id.get(goal_id)
        if goal is None:
            continue
        goals.append(
            GoalPayload(
                id=goal.id,
                title=goal.title,
                description=goal.description,
                week_of=goal.week_of,
                journey_week=goal.journey_week,
                journey_theme=goal.journey_theme,
                category=goal.category,
                tasks=[
                    TaskPayload.model_validate(tasks_by_id[task_id])
                    for task_id in goal.task_ids or []
                    if task_id in tasks_by_id
                ],
            )
        )

    reflections = db.execute(
        select(Task)
        .where(Task.dream_id == dream.id, Task.is_reflection.is_(True))
        .order_by(Task.week_number)
    ).scalars()

    return DreamGoalsResponse(
        dream=DreamSummary(id=dream.id, dream_text=dream.dream_text, status=dream.status, current_day=dream.current_day),
        goals=goals,
        reflection_tasks=[TaskPayload.model_validate(task) for task in reflections],
    )


@router.patch("/dreams/{dream_id}/current-day", response_model=CurrentDayResponse, tags=["dreams"])
def update_current_day_endpoint(
    dream_id: UUID,
    payload: CurrentDayUpdateRequest,
    db: Session = Depends(get_db),
) -> CurrentDayResponse:
    dream = load_dream(db, dream_id, payload.user_id)
    dream = set_current_day(db, dream, payload.current_day)
    return CurrentDayResponse(dream_id=dream.id, current_day=dream.current_day)


@router.get("/dreams/{dream_id}/discovery", response_model=DreamDiscoveryResponse, tags=["dreams"])
def get_dream_discovery_endpoint(
    dream_id: UUID,
    user_id: UUID = Query(...),
    db: Session = Depends(get_db),
) -> DreamDiscoveryResponse:
    record = db.execute(
        select(DreamDiscovery).where(DreamDiscovery.dream_id == dream_id, DreamDiscovery.user_id == user_id)
    ).scalar_one_or_none()
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Discovery data not found")
    return DreamDiscoveryResponse.model_validate(record)
