"""Plan generation API routes."""
from __future__ import annotations

from datetime import date
from time import perf_counter
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_plan_provider, get_today
from app.api.schemas.plan import (
    DiscoveryPlanRequest,
    DiscoveryPlanResponse,
    DiscoveryWeekSummary,
    PlanGenerationRequest,
    PlanGenerationResponse,
)
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.services.dream_plans import generate_discovery_plan_for_dream, generate_plan_for_dream
from app.services.plan_generator import PlanProvider

router = APIRouter()


@router.post("/dreams/{dream_id}/generate-plan", response_model=PlanGenerationResponse, tags=["plans"])
def generate_plan_endpoint(
    dream_id: UUID,
    payload: PlanGenerationRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    provider: Optional[PlanProvider] = Depends(get_plan_provider),
) -> PlanGenerationResponse:
    """Generate the dream's plan, or return the existing one unless ``regenerate`` is set."""
    request_id = getattr(http_request.state, "request_id", None)
    start_time = perf_counter()
    success = False
    metric_metadata: Dict[str, Any] = {"dream_id": str(dream_id), "regenerate": payload.regenerate}

    try:
        result = generate_plan_for_dream(
            db,
            dream_id=dream_id,
            user_id=payload.user_id,
            regenerate=payload.regenerate,
            today=today,
            provider=provider,
        )
        success = True
        metric_metadata["method"] = result.method
    finally:
        latency_ms = (perf_counter() - start_time) * 1000
        log_metric("plan.generate.success", 1 if success else 0, metadata=metric_metadata)
        log_metric("plan.generate.latency_ms", latency_ms, metadata=metric_metadata)

    return PlanGenerationResponse(
        dream_id=dream_id,
        goal_ids=result.goal_ids,
        total_goals=result.total_goals,
        journey_start_date=result.journey_start_date,
        current_day=result.current_day,
        provider=result.provider,
        model=result.model,
        method=result.method,
        regenerated=result.regenerated,
        already_generated=result.already_generated,
        request_id=request_id or "",
    )


@router.post(
    "/dreams/{dream_id}/generate-discovery-plan",
    response_model=DiscoveryPlanResponse,
    tags=["plans"],
)
def generate_discovery_plan_endpoint(
    dream_id: UUID,
    payload: DiscoveryPlanRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    provider: Optional[PlanProvider] = Depends(get_plan_provider),
) -> DiscoveryPlanResponse:
    request_id = getattr(http_request.state, "request_id", None)
    result = generate_discovery_plan_for_dream(
        db,
        dream_id=dream_id,
        user_id=payload.user_id,
        today=today,
        provider=provider,
    )
    return DiscoveryPlanResponse(
        dream_id=dream_id,
        goals_created=result.goals_created,
        total_activities=result.total_activities,
        journey_start_date=result.journey_start_date,
        weeks=[DiscoveryWeekSummary(**week) for week in result.weeks],
        request_id=request_id or "",
    )
