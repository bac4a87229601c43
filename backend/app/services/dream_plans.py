"""Run the plan pipeline for one dream and commit the result atomically.

Generation, normalization, materialization, the discovery projection and the
dream flags all land in a single transaction. If anything fails the
transaction is rolled back and the dream keeps ``plan_generated=False``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.context import bind_dream
from app.core.errors import (
    AlreadyHasPlanError,
    ConcurrentPlanGenerationError,
    DiscoveryPlanExistsError,
    EmptyMaterializationError,
    PersistenceWriteError,
)
from app.db.models.agent_action_log import AgentActionLog
from app.db.models.dream import Dream
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.discovery_activities import (
    DISCOVERY_METHOD,
    generate_discovery_activities,
    materialize_discovery_plan,
)
from app.services.discovery_projection import save_discovery_projection
from app.services.dream_intake import load_dream
from app.services.goal_materializer import materialize_plan
from app.services.plan_generator import (
    GeneratedPlan,
    PlanProvider,
    fallback_generated_plan,
    generate_dream_plan,
)
from app.services.regeneration_guard import retire_existing_plan

logger = logging.getLogger(__name__)


@dataclass
class PlanGenerationResult:
    goal_ids: List[UUID]
    total_goals: int
    journey_start_date: Optional[date]
    current_day: int
    provider: Optional[str]
    model: Optional[str]
    method: Optional[str]
    regenerated: bool = False
    already_generated: bool = False
    fallback_reason: Optional[str] = None


@dataclass
class DiscoveryPlanResult:
    goals_created: int
    total_activities: int
    journey_start_date: date
    weeks: List[Dict[str, Any]] = field(default_factory=list)
    goal_ids: List[UUID] = field(default_factory=list)


def ensure_plan_can_be_generated(dream: Dream, regenerate: bool) -> None:
    if dream.plan_generated and not regenerate:
        raise AlreadyHasPlanError(dream.id)


def generate_plan_for_dream(
    db: Session,
    *,
    dream_id: UUID,
    user_id: UUID,
    regenerate: bool,
    today: date,
    provider: Optional[PlanProvider],
    timeout_seconds: Optional[float] = None,
) -> PlanGenerationResult:
    with bind_dream(dream_id), trace(
        "dream.generate_plan",
        metadata={"regenerate": regenerate},
        user_id=str(user_id),
    ):
        dream = load_dream(db, dream_id, user_id)
        try:
            ensure_plan_can_be_generated(dream, regenerate)
        except AlreadyHasPlanError:
            logger.info("Plan already generated and regeneration not requested")
            return _summary(dream, already_generated=True)

        regenerated = False
        if dream.plan_generated:
            retire_existing_plan(db, dream)
            regenerated = True

        generated = generate_dream_plan(dream, today, provider, timeout_seconds)

        try:
            generated, goal_ids = _materialize_with_fallback(db, dream, generated, user_id=user_id, today=today)
            save_discovery_projection(db, user_id=user_id, dream_id=dream.id, plan=generated.plan, goal_ids=goal_ids)
            _mark_plan_generated(dream, goal_ids, generated, today)
            db.add(
                AgentActionLog(
                    user_id=user_id,
                    dream_id=dream.id,
                    action_type="dream_plan_generated",
                    action_payload={
                        "provider": generated.provider,
                        "model": generated.model,
                        "method": generated.method,
                        "fallback_reason": generated.fallback_reason,
                        "goals": len(goal_ids),
                        "weeks": len(generated.plan["weeks"]),
                        "regenerated": regenerated,
                    },
                    reason="Plan regenerated" if regenerated else "Initial plan generated",
                )
            )
            db.commit()
        except StaleDataError as exc:
            db.rollback()
            logger.warning("Dream changed while generating; discarding this run")
            raise ConcurrentPlanGenerationError(dream_id) from exc
        except PersistenceWriteError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to commit generated plan")
            raise PersistenceWriteError("Failed to persist the generated plan.", {"dream_id": str(dream_id)}) from exc

        db.refresh(dream)
        log_metric("plan.generated", 1, {"method": generated.method, "goals": len(goal_ids)})
        logger.info("Plan generated with %s goals via %s/%s", len(goal_ids), generated.provider, generated.method)
        return _summary(dream, regenerated=regenerated, fallback_reason=generated.fallback_reason)


def _materialize_with_fallback(
    db: Session,
    dream: Dream,
    generated: GeneratedPlan,
    *,
    user_id: UUID,
    today: date,
) -> tuple[GeneratedPlan, List[UUID]]:
    try:
        goal_ids = materialize_plan(
            db,
            user_id=user_id,
            dream=dream,
            plan=generated.plan,
            today=today,
            generation_method=generated.method,
        )
    except EmptyMaterializationError:
        if generated.used_fallback:
            raise
        generated = fallback_generated_plan(dream, "empty_materialization")
        goal_ids = materialize_plan(
            db,
            user_id=user_id,
            dream=dream,
            plan=generated.plan,
            today=today,
            generation_method=generated.method,
        )
    return generated, goal_ids


def _mark_plan_generated(dream: Dream, goal_ids: List[UUID], generated: GeneratedPlan, today: date) -> None:
    dream.goal_ids = list(goal_ids)
    dream.plan_generated = True
    dream.plan_generated_at = datetime.now(timezone.utc)
    dream.journey_start_date = today
    dream.current_day = 1
    dream.plan_provider = generated.provider
    dream.plan_model = generated.model
    dream.plan_method = generated.method


def _summary(
    dream: Dream,
    *,
    regenerated: bool = False,
    already_generated: bool = False,
    fallback_reason: Optional[str] = None,
) -> PlanGenerationResult:
    goal_ids = list(dream.goal_ids or [])
    return PlanGenerationResult(
        goal_ids=goal_ids,
        total_goals=len(goal_ids),
        journey_start_date=dream.journey_start_date,
        current_day=dream.current_day,
        provider=dream.plan_provider,
        model=dream.plan_model,
        method=dream.plan_method,
        regenerated=regenerated,
        already_generated=already_generated,
        fallback_reason=fallback_reason,
    )


def generate_discovery_plan_for_dream(
    db: Session,
    *,
    dream_id: UUID,
    user_id: UUID,
    today: date,
    provider: Optional[Any],
    timeout_seconds: Optional[float] = None,
) -> DiscoveryPlanResult:
    with bind_dream(dream_id), trace("dream.generate_discovery_plan", user_id=str(user_id)):
        dream = load_dream(db, dream_id, user_id)
        if dream.plan_generated:
            raise DiscoveryPlanExistsError(dream_id)

        activities = generate_discovery_activities(dream, provider, timeout_seconds)
        try:
            goal_ids = materialize_discovery_plan(db, user_id=user_id, dream=dream, plan=activities.plan, today=today)
            dream.goal_ids = list(goal_ids)
            dream.plan_generated = True
            dream.plan_generated_at = datetime.now(timezone.utc)
            dream.journey_start_date = today
            dream.current_day = 1
            dream.plan_provider = activities.provider
            dream.plan_model = activities.model
            dream.plan_method = DISCOVERY_METHOD
            db.add(
                AgentActionLog(
                    user_id=user_id,
                    dream_id=dream.id,
                    action_type="dream_discovery_plan_generated",
                    action_payload={
                        "provider": activities.provider,
                        "model": activities.model,
                        "fallback_reason": activities.fallback_reason,
                        "goals": len(goal_ids),
                        "activities": activities.total_activities,
                    },
                    reason="Discovery plan generated",
                )
            )
            db.commit()
        except StaleDataError as exc:
            db.rollback()
            raise ConcurrentPlanGenerationError(dream_id) from exc
        except PersistenceWriteError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to commit discovery plan")
            raise PersistenceWriteError("Failed to persist the discovery plan.", {"dream_id": str(dream_id)}) from exc

        log_metric("plan.discovery_generated", 1, {"activities": activities.total_activities})
        return DiscoveryPlanResult(
            goals_created=len(goal_ids),
            total_activities=activities.total_activities,
            journey_start_date=today,
            weeks=[
                {"week": week["week"], "theme": week["theme"], "activities_count": len(week["activities"])}
                for week in activities.plan["weeks"]
            ],
            goal_ids=list(goal_ids),
        )
