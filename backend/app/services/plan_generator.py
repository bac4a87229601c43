"""Ask the external plan provider for a dream plan and converge on a canonical plan."""
from __future__ import annotations

import contextvars
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, TypeVar

import openai
from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.errors import (
    GeneratorTimeoutError,
    GeneratorUnavailableError,
    MalformedPlanError,
)
from app.observability.events import emit_event
from app.observability.tracing import trace
from app.services.day_scheduler import available_days_for_partial_week, current_weekday_code
from app.services.fallback_plan import build_fallback_plan
from app.services.plan_normalizer import normalize_plan

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_PROVIDER = "local-fallback"
FALLBACK_MODEL = "template"
FALLBACK_METHOD = "fallback"
TEMPLATE_METHOD = "template"


class PlannerRequest(BaseModel):
    """Everything the provider needs to draft a plan for one dream."""

    dream_text: str
    confidence: int = Field(..., ge=1, le=100)
    time_horizon: int = Field(..., ge=1)
    career_path: str = "employee"
    time_commitment: str
    learning_style: str
    start_date: date
    start_day: str = Field(..., description="Weekday code of the generation day.")
    available_days_week1: List[str] = Field(default_factory=list)
    archetype_data: Dict[str, Any] = Field(default_factory=dict)
    target_role: str = ""
    domain: str = ""
    current_role: str = ""
    location: str = ""
    motivation: str = ""


class PlanProvider(Protocol):
    def generate(self, request: PlannerRequest) -> Dict[str, Any]:
        """Return ``{plan | goals, provider, model, method}``."""
        ...


@dataclass
class GeneratedPlan:
    plan: Dict[str, Any]
    provider: str
    model: str
    method: str
    fallback_reason: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.method == FALLBACK_METHOD


_FENCE_PATTERN = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_TRAILING_COMMA_PATTERN = re.compile(r",(\s*[}\]])")


def parse_plan_json(text: Optional[str]) -> Dict[str, Any]:
    """Parse a model reply that should hold one JSON object.

    Strips markdown fences and surrounding prose, drops trailing commas and
    closes brackets left open by a truncated reply.
    """
    if not isinstance(text, str) or not text.strip():
        raise MalformedPlanError("Provider returned an empty response.")

    cleaned = _FENCE_PATTERN.sub("", text).strip()
    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace == -1:
        raise MalformedPlanError("Provider response does not contain a JSON object.")
    tail = cleaned[first_brace:]
    candidate = cleaned[first_brace : last_brace + 1] if last_brace > first_brace else tail

    try:
        parsed = json.loads(_TRAILING_COMMA_PATTERN.sub(r"\1", candidate))
    except json.JSONDecodeError:
        # A truncated reply keeps going past its last closing brace.
        completed = _TRAILING_COMMA_PATTERN.sub(r"\1", _close_open_brackets(tail))
        try:
            parsed = json.loads(completed)
        except json.JSONDecodeError as exc:
            raise MalformedPlanError("Provider response is not valid JSON.", {"error": str(exc)}) from exc

    if not isinstance(parsed, dict):
        raise MalformedPlanError("Provider response must be a JSON object.")
    return parsed


def _close_open_brackets(text: str) -> str:
    closers: List[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "{[":
            closers.append("}" if char == "{" else "]")
        elif char in "}]" and closers:
            closers.pop()
    suffix = '"' if in_string else ""
    return text + suffix + "".join(reversed(closers))


class OpenAIPlanProvider:
    """Chat-completion provider in JSON mode."""

    provider_name = "openai"

    def __init__(self, api_key: str, model: Optional[str] = None, timeout_seconds: Optional[float] = None):
        self.model = model or settings.openai_model
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds or settings.plan_generation_timeout_seconds,
        )

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the raw JSON-mode reply text."""
        completion = self._client.chat.completions.create(
            model=self.model,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        return completion.choices[0].message.content or ""

    def generate(self, request: PlannerRequest) -> Dict[str, Any]:
        content = self.complete(_SYSTEM_PROMPT, _build_user_prompt(request))
        return {
            "plan": parse_plan_json(content),
            "provider": self.provider_name,
            "model": self.model,
            "method": "ai",
        }


_SYSTEM_PROMPT = (
    "You are DreamPath, a supportive coach who turns a personal dream into a concrete multi-week plan.\n"
    "Return strictly valid JSON with this structure:\n"
    '{"goals": [{"title": str, "description": str, "milestones": [str]}],\n'
    ' "weeks": [{"week": int, "theme": str, "focus": str, "tasks": [\n'
    '   {"goalIndex": int, "title": str, "estTime": int, "day": "Sun|Mon|Tue|Wed|Thu|Fri|Sat",\n'
    '    "rationale": str, "skillCategory": str, "difficultyLevel": "beginner|intermediate|advanced",\n'
    '    "metricsImpacted": [{"metric": str, "expectedImpact": "low|medium|high", "reasoning": str}]}]}],\n'
    ' "habitTips": [str], "difficultyLevel": str}\n'
    "goalIndex points into the goals list. Keep tasks specific and achievable in one sitting."
)


def _build_user_prompt(request: PlannerRequest) -> str:
    context_lines = [
        f"Dream: {request.dream_text}",
        f"Confidence (1-100): {request.confidence}",
        f"Time horizon: {request.time_horizon} weeks",
        f"Career path: {request.career_path}",
        f"Time commitment style: {request.time_commitment}",
        f"Learning style: {request.learning_style}",
        f"Plan starts on {request.start_date.isoformat()} ({request.start_day}).",
        "Week 1 tasks may only use these days: " + ", ".join(request.available_days_week1),
    ]
    for label, value in (
        ("Target role", request.target_role),
        ("Domain", request.domain),
        ("Current role", request.current_role),
        ("Location", request.location),
        ("Motivation", request.motivation),
    ):
        if value:
            context_lines.append(f"{label}: {value}")
    return "\n".join(context_lines)


def build_planner_request(dream, today: date) -> PlannerRequest:
    archetype = dict(dream.archetype_data or {})
    return PlannerRequest(
        dream_text=dream.dream_text,
        confidence=dream.confidence,
        time_horizon=dream.time_horizon,
        time_commitment=dream.time_commitment,
        learning_style=dream.learning_style,
        start_date=today,
        start_day=current_weekday_code(today),
        available_days_week1=available_days_for_partial_week(today),
        archetype_data=archetype,
        target_role=archetype.get("targetRole") or "",
        domain=archetype.get("domain") or "",
        current_role=archetype.get("currentRole") or "",
        location=archetype.get("location") or "",
        motivation=archetype.get("motivation") or "",
    )


def default_plan_provider() -> Optional[PlanProvider]:
    """Return the configured provider, or ``None`` to go straight to the template."""
    if not settings.openai_api_key:
        return None
    return OpenAIPlanProvider(api_key=settings.openai_api_key)


def run_with_timeout(func: Callable[..., T], *args: Any, timeout_seconds: float) -> T:
    """Run a provider call in a worker thread, giving up after ``timeout_seconds``."""
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="plan-provider")
    context = contextvars.copy_context()
    future = executor.submit(context.run, func, *args)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError as exc:
        future.cancel()
        raise GeneratorTimeoutError(timeout_seconds) from exc
    finally:
        # Never block the request on a provider that is still running.
        executor.shutdown(wait=False)


def fallback_generated_plan(dream, reason: str) -> GeneratedPlan:
    emit_event("plan.fallback_triggered", level=logging.WARNING, reason=reason, time_horizon=dream.time_horizon)
    plan = normalize_plan(build_fallback_plan(dream.time_horizon, dream.dream_text))
    return GeneratedPlan(
        plan=plan,
        provider=FALLBACK_PROVIDER,
        model=FALLBACK_MODEL,
        method=FALLBACK_METHOD,
        fallback_reason=reason,
    )


def generate_dream_plan(
    dream,
    today: date,
    provider: Optional[PlanProvider],
    timeout_seconds: Optional[float] = None,
) -> GeneratedPlan:
    """Return a canonical plan; every provider failure ends in the template plan."""
    if provider is None:
        return fallback_generated_plan(dream, "provider_not_configured")

    timeout = timeout_seconds if timeout_seconds is not None else settings.plan_generation_timeout_seconds
    request = build_planner_request(dream, today)
    trace_metadata = {
        "time_horizon": dream.time_horizon,
        "time_commitment": dream.time_commitment,
        "timeout_seconds": timeout,
    }

    try:
        with trace("plan.generate", metadata=trace_metadata, user_id=str(dream.user_id)):
            response = run_with_timeout(provider.generate, request, timeout_seconds=timeout)
        raw_plan, provider_name, model, method = _unpack_response(response)
        plan = normalize_plan(raw_plan)
    except GeneratorTimeoutError:
        logger.warning("Plan provider timed out after %ss", timeout)
        return fallback_generated_plan(dream, "timeout")
    except GeneratorUnavailableError as exc:
        logger.warning("Plan provider returned an unusable response: %s", exc.message)
        return fallback_generated_plan(dream, "unusable_response")
    except MalformedPlanError as exc:
        logger.warning("Plan provider returned a malformed plan: %s", exc.message)
        return fallback_generated_plan(dream, "malformed_plan")
    except Exception as exc:
        logger.exception("Plan provider failed")
        return fallback_generated_plan(dream, f"provider_error:{type(exc).__name__}")

    return GeneratedPlan(plan=plan, provider=provider_name, model=model, method=method)


def _unpack_response(response: Any) -> tuple[Dict[str, Any], str, str, str]:
    if not isinstance(response, Mapping):
        raise GeneratorUnavailableError("Provider response must be an object.")

    method = str(response.get("method") or "ai")
    provider_name = str(response.get("provider") or "unknown")
    model = str(response.get("model") or "unknown")

    if response.get("plan") and method != TEMPLATE_METHOD:
        return response["plan"], provider_name, model, method
    if method == TEMPLATE_METHOD and response.get("goals"):
        return {"goals": response["goals"]}, response.get("provider") or "template", response.get("model") or "fallback", method
    raise GeneratorUnavailableError("Provider response carries neither a plan nor template goals.")
