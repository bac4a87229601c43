"""Deterministic template plan used whenever the generator cannot be trusted."""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

MIN_FALLBACK_WEEKS = 2
MAX_FALLBACK_WEEKS = 8
DEFAULT_FALLBACK_WEEKS = 6

# Later entries win, so broader fields come first.
_KEYWORD_RULES = (
    (r"\bai\b|machine learning|artificial intelligence", "AI/ML", "AI and machine learning", "build AI solutions"),
    (r"product manag|\bpm\b", "product management", "product strategy", "develop products"),
    (r"\btech|software|\bapps?\b|developer", "technology", "programming", "build software"),
    (r"business|startup|entrepreneur", "business", "business development", "grow business"),
    (r"\bart\b|\barts\b|design|creative", "creative arts", "artistic skills", "create art"),
    (r"marketing|\bbrand|social media", "marketing", "marketing strategy", "build brands"),
    (r"financ|investment|trading", "finance", "financial analysis", "manage finances"),
    (r"\bhealth|medical|doctor", "healthcare", "medical knowledge", "help patients"),
)
_COMPANY_PATTERN = re.compile(
    r"\b(google|microsoft|amazon|facebook|meta|apple|netflix|tesla|spotify|uber|airbnb|anthropic|openai)\b",
    re.IGNORECASE,
)


def extract_dream_keywords(dream_text: Optional[str]) -> Dict[str, str]:
    """Pick a field, skill and company mention out of the dream for personalized copy."""
    keywords = {"field": "your field", "skill": "key skills", "action": "work", "goal": "dream"}
    text = (dream_text or "").lower()

    for pattern, field, skill, action in _KEYWORD_RULES:
        if re.search(pattern, text):
            keywords.update(field=field, skill=skill, action=action)

    company = _COMPANY_PATTERN.search(text)
    if company:
        keywords["company"] = company.group(1)
    return keywords


def fallback_week_count(time_horizon: Any) -> int:
    try:
        weeks = int(time_horizon or DEFAULT_FALLBACK_WEEKS)
    except (TypeError, ValueError):
        weeks = DEFAULT_FALLBACK_WEEKS
    return min(max(weeks, MIN_FALLBACK_WEEKS), MAX_FALLBACK_WEEKS)


def build_fallback_plan(time_horizon: Any, dream_text: Optional[str] = None) -> Dict[str, Any]:
    """Return a canonical two-goal plan spanning 2 to 8 weeks."""
    keywords = extract_dream_keywords(dream_text)
    total_weeks = fallback_week_count(time_horizon)

    goals = [
        {
            "title": "Getting Started",
            "description": "Initial steps towards your dream",
            "rationale": "Building a foundation is essential for any journey",
            "metricsImpacted": ["commitment", "clarity"],
        },
        {
            "title": "Skill Development",
            "description": f"Learning and growing the {keywords['skill']} you need",
            "rationale": "Competency development accelerates progress",
            "metricsImpacted": ["competency", "growth_readiness"],
        },
    ]

    weeks: List[Dict[str, Any]] = []
    for week_number in range(1, total_weeks + 1):
        week: Dict[str, Any] = {
            "week": week_number,
            "theme": _theme_for(week_number),
            "focus": _focus_for(week_number),
            "tasks": [_progress_task(week_number, keywords)],
        }
        if week_number > 1:
            week["tasks"].append(_learning_task(keywords))
        weeks.append(week)

    return {"goals": goals, "weeks": weeks, "difficultyLevel": "beginner"}


def _theme_for(week_number: int) -> str:
    if week_number == 1:
        return "Foundation"
    if week_number <= 3:
        return "Exploration"
    return "Development"


def _focus_for(week_number: int) -> str:
    if week_number == 1:
        return "Getting started and building momentum"
    if week_number <= 3:
        return "Understanding your path forward"
    return "Building skills and taking action"


def _progress_task(week_number: int, keywords: Dict[str, str]) -> Dict[str, Any]:
    first_week = week_number == 1
    if first_week:
        title = "Start working on your dream"
        if keywords["field"] != "your field":
            title = f"Map your first steps into {keywords['field']}"
    else:
        title = f"Week {week_number} progress check"
    return {
        "goalIndex": 0,
        "title": title,
        "rationale": (
            "Begin taking action towards your goal"
            if first_week
            else "Regular progress reviews help maintain momentum and adjust course"
        ),
        "estTime": 30,
        "day": "Mon" if first_week else "Tue",
        "difficultyLevel": "beginner",
        "skillCategory": "planning" if first_week else "self_assessment",
        "metricsImpacted": [
            {
                "metric": "commitment",
                "expectedImpact": "medium",
                "reasoning": "Taking the first step builds commitment" if first_week else "Regular review maintains commitment",
            }
        ],
    }


def _learning_task(keywords: Dict[str, str]) -> Dict[str, Any]:
    subject = keywords["skill"] if keywords["skill"] != "key skills" else "your dream"
    return {
        "goalIndex": 1,
        "title": f"Learn something new related to {subject}",
        "rationale": "Continuous learning builds competency and confidence",
        "estTime": 45,
        "day": "Thu",
        "difficultyLevel": "beginner",
        "skillCategory": "skill_development",
        "metricsImpacted": [
            {
                "metric": "competency",
                "expectedImpact": "medium",
                "reasoning": "Learning new skills directly improves competency",
            }
        ],
    }
