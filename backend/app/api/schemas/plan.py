"""Schemas for plan generation endpoints."""
from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PlanGenerationRequest(BaseModel):
    user_id: UUID
    regenerate: bool = Field(default=False, description="Replace an existing plan instead of returning it.")


class PlanGenerationResponse(BaseModel):
    dream_id: UUID
    goal_ids: List[UUID]
    total_goals: int
    journey_start_date: Optional[date]
    current_day: int
    provider: Optional[str]
    model: Optional[str]
    method: Optional[str]
    regenerated: bool
    already_generated: bool
    request_id: str


class DiscoveryPlanRequest(BaseModel):
    user_id: UUID


class DiscoveryWeekSummary(BaseModel):
    week: int
    theme: str
    activities_count: int


class DiscoveryPlanResponse(BaseModel):
    dream_id: UUID
    goals_created: int
    total_activities: int
    journey_start_date: date
    weeks: List[DiscoveryWeekSummary]
    request_id: str
