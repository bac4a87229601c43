"""Schemas for dream intake and dream reads."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.db.models.dream import MAX_JOURNEY_DAY

LearningStyle = Literal["visual", "auditory", "kinesthetic", "reading"]
TimeCommitment = Literal["micro-burst", "focused-blocks", "flexible-flow", "beast-mode"]


class DreamCreateRequest(BaseModel):
    user_id: UUID
    dream_text: str = Field(..., min_length=10, max_length=2000)
    confidence: int = Field(..., ge=1, le=100)
    time_horizon: int = Field(..., ge=1, le=104, description="Planned journey length in weeks.")
    learning_style: LearningStyle
    time_commitment: TimeCommitment
    archetype_type: Optional[str] = Field(default=None, max_length=50)

    @field_validator("dream_text")
    @classmethod
    def trim_dream_text(cls, value: str) -> str:
        cleaned = value.strip()
        if len(cleaned) < 10:
            raise ValueError("dream_text must be at least 10 characters after trimming")
        return cleaned


class DreamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    dream_text: str
    confidence: int
    time_horizon: int
    learning_style: str
    time_commitment: str
    archetype_data: Dict[str, Any] = Field(default_factory=dict)
    status: str
    plan_generated: bool
    plan_generated_at: Optional[datetime] = None
    journey_start_date: Optional[date] = None
    current_day: int
    goal_ids: List[UUID] = Field(default_factory=list)
    plan_provider: Optional[str] = None
    plan_model: Optional[str] = None
    plan_method: Optional[str] = None


class CurrentDayUpdateRequest(BaseModel):
    user_id: UUID
    current_day: int = Field(..., ge=1, le=MAX_JOURNEY_DAY)


class CurrentDayResponse(BaseModel):
    dream_id: UUID
    current_day: int


class MetricImpact(BaseModel):
    metric: str
    expectedImpact: str
    reasoning: Optional[str] = None


class TaskPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    goal_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    est_time: int
    day: str
    completed: bool
    is_reflection: bool
    rationale: str
    skill_category: str
    difficulty_level: str
    metrics_impacted: List[MetricImpact] = Field(default_factory=list)
    week_number: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias=AliasChoices("metadata_json", "metadata"))


class GoalPayload(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    week_of: date
    journey_week: Optional[int] = None
    journey_theme: Optional[str] = None
    category: str
    tasks: List[TaskPayload] = Field(default_factory=list)


class DreamSummary(BaseModel):
    id: UUID
    dream_text: str
    status: str
    current_day: int


class DreamGoalsResponse(BaseModel):
    dream: DreamSummary
    goals: List[GoalPayload]
    reflection_tasks: List[TaskPayload] = Field(default_factory=list)


class DreamDiscoveryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    dream_id: UUID
    week_themes: List[str]
    goal_progression: Dict[str, Any]
    sub_goals: Dict[str, Any]
    habit_formation_tips: List[str]
    milestones: List[Dict[str, Any]]
    progress_tracking_metrics: Dict[str, Any]
    updated_at: Optional[datetime] = None
