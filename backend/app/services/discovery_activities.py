"""21-day discovery journey: three weeks of seven small activities each.

A lighter alternative to the full dream plan. The provider drafts the
activities; anything it returns that does not validate is replaced by a
keyword-personalized template.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import MalformedPlanError, PersistenceWriteError
from app.db.models.goal import Goal
from app.db.models.task import Task
from app.observability.events import emit_event
from app.observability.tracing import trace
from app.services.day_scheduler import WEEKDAY_CODES, correct_past_day, week_start_date
from app.services.fallback_plan import extract_dream_keywords
from app.services.plan_generator import parse_plan_json, run_with_timeout

logger = logging.getLogger(__name__)

DISCOVERY_WEEKS = 3
ACTIVITIES_PER_WEEK = 7
DISCOVERY_CATEGORY = "discovery"
DISCOVERY_METHOD = "discovery"


class DiscoveryProvider(Protocol):
    def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


@dataclass
class DiscoveryActivities:
    plan: Dict[str, Any]
    provider: str
    model: str
    fallback_reason: Optional[str] = None

    @property
    def total_activities(self) -> int:
        return sum(len(week["activities"]) for week in self.plan["weeks"])


class DiscoveryActivity(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str
    description: Optional[str] = None
    type: str = "general"
    estimatedTime: int = Field(default=30, validate_default=True, description="Minutes.")
    day: Optional[int] = None

    @field_validator("title", mode="before")
    @classmethod
    def require_title(cls, value: Any) -> str:
        text = str(value).strip() if value else ""
        if not text:
            raise ValueError("activity title is required")
        return text

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) and value.strip() else None

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, value: Any) -> str:
        return value if isinstance(value, str) and value.strip() else "general"

    @field_validator("estimatedTime", mode="before")
    @classmethod
    def default_minutes(cls, value: Any) -> int:
        return _positive_int(value) or 30

    @field_validator("day", mode="before")
    @classmethod
    def positive_day(cls, value: Any) -> Optional[int]:
        return _positive_int(value)

    @model_validator(mode="after")
    def describe_with_title(self) -> "DiscoveryActivity":
        if self.description is None:
            self.description = self.title
        return self


class DiscoveryWeek(BaseModel):
    week: Optional[int] = None
    theme: Optional[str] = None
    activities: List[DiscoveryActivity] = Field(..., min_length=1)

    @field_validator("week", mode="before")
    @classmethod
    def positive_week(cls, value: Any) -> Optional[int]:
        return _positive_int(value)

    @field_validator("theme", mode="before")
    @classmethod
    def blank_theme(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) and value.strip() else None

    @model_validator(mode="after")
    def number_days(self) -> "DiscoveryWeek":
        for position, activity in enumerate(self.activities, start=1):
            if activity.day is None:
                activity.day = position
        return self


class DiscoveryPlan(BaseModel):
    weeks: List[DiscoveryWeek] = Field(..., min_length=DISCOVERY_WEEKS, max_length=DISCOVERY_WEEKS)

    @model_validator(mode="after")
    def number_weeks(self) -> "DiscoveryPlan":
        for position, week in enumerate(self.weeks, start=1):
            week.week = week.week or position
            week.theme = week.theme or f"Discovery Week {position}"
        return self


_DISCOVERY_SYSTEM_PROMPT = (
    "You design 21-day discovery journeys that help someone test a personal dream with small daily activities.\n"
    "Generate 3 weeks with 7 activities each. Week 1 focuses on foundation, week 2 on exploration, "
    "week 3 on testing commitment.\n"
    "Return ONLY JSON shaped like:\n"
    '{"weeks": [{"week": 1, "theme": str, "activities": [\n'
    '  {"day": 1, "title": str, "description": str, "type": "visualization|research|reflection|'
    'assessment|planning|action|learning", "estimatedTime": int, "instructions": str}]}]}\n'
    "Days run from 1 to 21 across the three weeks."
)


def build_discovery_prompt(dream_text: str) -> str:
    return f'Create a 21-day discovery plan for: "{dream_text}"'


def validate_discovery_plan(plan: Any) -> Dict[str, Any]:
    """Return a sanitized copy with defaults filled in, or raise ``MalformedPlanError``."""
    try:
        validated = DiscoveryPlan.model_validate(plan)
    except ValidationError as exc:
        raise MalformedPlanError(
            "Discovery plan failed validation.",
            {"errors": exc.error_count(), "first_error": exc.errors()[0]["msg"]},
        ) from exc
    return validated.model_dump()


def fallback_discovery_plan(dream_text: Optional[str]) -> Dict[str, Any]:
    keywords = extract_dream_keywords(dream_text)
    field = keywords["field"]
    skill = keywords["skill"]
    company = keywords.get("company")

    def activity(day, title, description, kind, minutes, instructions):
        return {
            "day": day,
            "title": title,
            "description": description,
            "type": kind,
            "estimatedTime": minutes,
            "instructions": instructions,
        }

    return {
        "weeks": [
            {
                "week": 1,
                "theme": "Dream Foundation",
                "activities": [
                    activity(1, "Dream Visualization Session", "Spend 20 minutes living in your achieved dream",
                             "visualization", 20, "Find a quiet space and imagine your dream life in detail"),
                    activity(2, f"Research {field} Success Stories",
                             f"Find 3 people who achieved similar dreams in {field}", "research", 30,
                             f"Focus on {company} and similar companies" if company
                             else "Use LinkedIn, industry blogs, and success stories"),
                    activity(3, "Dream Alignment Assessment",
                             "Reflect on how well your dream aligns with your values and goals", "reflection", 15,
                             "Write about what excites you most about this dream"),
                    activity(4, f"{field[:1].upper()}{field[1:]} Industry Overview",
                             f"Research the current state of {field}", "research", 25,
                             f"Focus on {company}'s position in the market" if company
                             else "Look for trends, opportunities, and challenges"),
                    activity(5, "Skills Gap Analysis", "Identify what skills you need to develop for your dream",
                             "assessment", 20, "List current skills vs required skills"),
                    activity(6, "Network Mapping", "Identify people who could help you with your dream",
                             "planning", 15, "Think of mentors, peers, and industry connections"),
                    activity(7, "Week 1 Reflection", "Reflect on your dream foundation week", "reflection", 20,
                             "What did you learn about your dream this week?"),
                ],
            },
            {
                "week": 2,
                "theme": "Path Exploration",
                "activities": [
                    activity(8, "Mentor Research", f"Find potential mentors in {field}", "research", 30,
                             "Look for accessible mentors and thought leaders"),
                    activity(9, "Learning Path Planning", "Create a learning plan for your dream", "planning", 25,
                             "Identify courses, books, and resources you need"),
                    activity(10, "Success Story Analysis", "Deep dive into one success story from your research",
                             "research", 20, "Understand their journey, challenges, and strategies"),
                    activity(11, "Dream Obstacles Identification", "Identify potential obstacles to your dream",
                             "assessment", 15, "Be honest about challenges you might face"),
                    activity(12, "Resource Mapping", "Map out resources available to help you", "planning", 20,
                             "Include financial, educational, and network resources"),
                    activity(13, "First Connection Attempt", f"Reach out to someone working in {field}",
                             "action", 30, "Send a thoughtful message or comment on their content"),
                    activity(14, "Week 2 Reflection", "Reflect on your path exploration week", "reflection", 25,
                             "How has your understanding of the path evolved?"),
                ],
            },
            {
                "week": 3,
                "theme": "Commitment Testing",
                "activities": [
                    activity(15, "Daily Practice Design", "Design a small daily practice related to your dream",
                             "planning", 20, "Create something you can do for 15 minutes daily"),
                    activity(16, "First Learning Session", f"Start learning {skill} essential for your dream",
                             "learning", 45, f"Begin with the most important part of {skill}"),
                    activity(17, "Dream Commitment Assessment", "Honestly assess your commitment level to this dream",
                             "assessment", 15, "Rate your commitment and identify what's holding you back"),
                    activity(18, "Support System Building", "Identify and reach out to your support system",
                             "action", 30, "Talk to friends, family, or mentors about your dream"),
                    activity(19, "First Milestone Planning", "Plan your first concrete milestone toward the dream",
                             "planning", 25, "Set a specific, measurable goal for the next month"),
                    activity(20, "Reality Check Session", "Final reality check on your dream's feasibility",
                             "assessment", 20, "Balance optimism with realistic planning"),
                    activity(21, "Discovery Journey Complete", "Reflect on your 21-day discovery journey",
                             "reflection", 30, "Reflect on insights gained and next steps"),
                ],
            },
        ]
    }


def generate_discovery_activities(
    dream,
    provider: Optional[DiscoveryProvider],
    timeout_seconds: Optional[float] = None,
) -> DiscoveryActivities:
    if provider is None or not hasattr(provider, "complete"):
        return _fallback(dream, "provider_not_configured")

    timeout = timeout_seconds if timeout_seconds is not None else settings.plan_generation_timeout_seconds
    try:
        with trace("discovery.generate", metadata={"timeout_seconds": timeout}, user_id=str(dream.user_id)):
            raw = run_with_timeout(
                provider.complete,
                _DISCOVERY_SYSTEM_PROMPT,
                build_discovery_prompt(dream.dream_text),
                timeout_seconds=timeout,
            )
        plan = validate_discovery_plan(parse_plan_json(raw))
    except MalformedPlanError as exc:
        logger.warning("Discovery plan rejected: %s", exc.message)
        return _fallback(dream, "malformed_plan")
    except Exception as exc:
        logger.warning("Discovery provider failed: %s", exc)
        return _fallback(dream, f"provider_error:{type(exc).__name__}")

    return DiscoveryActivities(
        plan=plan,
        provider=getattr(provider, "provider_name", "unknown"),
        model=getattr(provider, "model", "unknown"),
    )


def _fallback(dream, reason: str) -> DiscoveryActivities:
    emit_event("plan.fallback_triggered", level=logging.WARNING, reason=reason, variant=DISCOVERY_METHOD)
    return DiscoveryActivities(
        plan=validate_discovery_plan(fallback_discovery_plan(dream.dream_text)),
        provider="local-fallback",
        model="template",
        fallback_reason=reason,
    )


def materialize_discovery_plan(
    db: Session,
    *,
    user_id: UUID,
    dream,
    plan: Dict[str, Any],
    today: date,
) -> List[UUID]:
    """Create one goal per discovery week with one task per activity (flushed only)."""
    goal_ids: List[UUID] = []
    try:
        for week in plan["weeks"]:
            week_number = week["week"]
            goal = Goal(
                user_id=user_id,
                dream_id=dream.id,
                title=f"Discovery Week {week_number}: {week['theme']}",
                description=f"Week {week_number} of your 21-day discovery journey",
                week_of=week_start_date(today, week_number),
                journey_week=week_number,
                journey_theme=week["theme"],
                category=DISCOVERY_CATEGORY,
            )
            db.add(goal)
            db.flush()

            task_ids: List[UUID] = []
            for activity in week["activities"]:
                task = Task(
                    user_id=user_id,
                    goal_id=goal.id,
                    dream_id=dream.id,
                    name=activity["title"],
                    description=activity["description"],
                    est_time=activity["estimatedTime"],
                    day=correct_past_day(WEEKDAY_CODES[activity["day"] % 7], today),
                    rationale=activity.get("instructions") or activity["description"],
                    skill_category=activity["type"],
                    difficulty_level="beginner",
                    metrics_impacted=[
                        {
                            "metric": "clarity",
                            "expectedImpact": "medium",
                            "reasoning": "Discovery activities sharpen your picture of the dream",
                        }
                    ],
                    adaptive_metadata={
                        "generationMethod": "template_based",
                        "timeCommitmentStyle": dream.time_commitment,
                        "confidenceLevel": dream.confidence,
                        "archetypeContext": "discovery",
                    },
                    week_number=week_number,
                    metadata_json={
                        "stage": DISCOVERY_CATEGORY,
                        "activityType": activity["type"],
                        "instructions": activity.get("instructions"),
                        "discoveryDay": _discovery_day(week_number, activity["day"]),
                    },
                )
                db.add(task)
                db.flush()
                task_ids.append(task.id)

            goal.task_ids = task_ids
            db.flush()
            goal_ids.append(goal.id)
            emit_event("plan.goal_created", goal_id=goal.id, week=week_number, tasks=len(task_ids), variant=DISCOVERY_METHOD)
    except SQLAlchemyError as exc:
        logger.exception("Failed to persist discovery goals")
        raise PersistenceWriteError("Failed to persist the discovery plan.", {"goals_written": len(goal_ids)}) from exc
    return goal_ids


def _discovery_day(week_number: int, day: int) -> int:
    # Providers number days either per week (1-7) or across the journey (1-21).
    if day > ACTIVITIES_PER_WEEK:
        return day
    return (week_number - 1) * ACTIVITIES_PER_WEEK + day


def _positive_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 else None
