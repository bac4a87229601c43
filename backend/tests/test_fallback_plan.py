from __future__ import annotations

import pytest

from app.services.fallback_plan import build_fallback_plan, extract_dream_keywords, fallback_week_count
from app.services.plan_normalizer import normalize_plan


@pytest.mark.parametrize("time_horizon", range(1, 101))
def test_fallback_plan_always_normalizes(time_horizon: int) -> None:
    plan = normalize_plan(build_fallback_plan(time_horizon, "I want to become a product manager"))

    assert 2 <= len(plan["weeks"]) <= 8
    assert all(week["tasks"] for week in plan["weeks"])
    assert len(plan["goals"]) == 2


@pytest.mark.parametrize(
    ("time_horizon", "expected"),
    [(1, 2), (2, 2), (6, 6), (8, 8), (12, 8), (None, 6), (0, 6), ("4", 4), ("soon", 6)],
)
def test_fallback_week_count_is_clamped(time_horizon, expected) -> None:
    assert fallback_week_count(time_horizon) == expected


def test_fallback_weeks_follow_theme_progression() -> None:
    plan = build_fallback_plan(5)

    assert [week["theme"] for week in plan["weeks"]] == [
        "Foundation",
        "Exploration",
        "Exploration",
        "Development",
        "Development",
    ]
    assert len(plan["weeks"][0]["tasks"]) == 1
    assert all(len(week["tasks"]) == 2 for week in plan["weeks"][1:])
    assert plan["weeks"][1]["tasks"][0]["title"] == "Week 2 progress check"
    assert plan["weeks"][1]["tasks"][1]["goalIndex"] == 1


def test_fallback_plan_is_personalized_by_dream_text() -> None:
    plan = build_fallback_plan(3, "Launch a marketing agency for startups")

    assert plan["weeks"][0]["tasks"][0]["title"] == "Map your first steps into marketing"
    assert plan["weeks"][1]["tasks"][1]["title"] == "Learn something new related to marketing strategy"


def test_fallback_plan_without_keywords_uses_generic_copy() -> None:
    plan = build_fallback_plan(2, "Something I have always wanted")

    assert plan["weeks"][0]["tasks"][0]["title"] == "Start working on your dream"
    assert plan["weeks"][1]["tasks"][1]["title"] == "Learn something new related to your dream"


def test_extract_dream_keywords() -> None:
    keywords = extract_dream_keywords("Become a machine learning engineer at Google")

    assert keywords["field"] == "AI/ML"
    assert keywords["skill"] == "AI and machine learning"
    assert keywords["company"] == "google"


def test_extract_dream_keywords_defaults() -> None:
    keywords = extract_dream_keywords(None)

    assert keywords == {"field": "your field", "skill": "key skills", "action": "work", "goal": "dream"}
