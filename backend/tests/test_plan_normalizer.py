from __future__ import annotations

import copy

import pytest

from app.core.errors import MalformedPlanError
from app.services.day_scheduler import round_robin_day
from app.services.plan_normalizer import PlanShape, PlanTaskEntry, classify_plan_shape, normalize_plan

REQUIRED_TASK_FIELDS = ("day", "estTime", "rationale", "skillCategory", "difficultyLevel")


def _scalable_plan() -> dict:
    return {
        "goals": [{"title": "Learn the basics"}, {"title": "Build a portfolio"}],
        "weeks": [
            {
                "week": 1,
                "theme": "Foundation",
                "focus": "Getting oriented",
                "tasks": [
                    {"goalIndex": 0, "title": "Read an intro guide", "estTime": "45 min", "day": "monday"},
                    {"goalIndex": 1, "title": "Sketch a project idea", "duration": "20"},
                ],
            },
            {"tasks": [{"goalIndex": "1", "title": "Ship a first draft", "rationale": "Momentum"}]},
        ],
        "habitTips": ["Work in short sessions"],
    }


def _legacy_plan(goal_count: int = 6, tasks_per_goal: int = 2) -> dict:
    return {
        "goals": [
            {
                "title": f"Goal {index}",
                "description": f"Description {index}",
                "tasks": [{"name": f"Goal {index} task {task}", "estTime": 25} for task in range(tasks_per_goal)],
            }
            for index in range(goal_count)
        ]
    }


def _assert_canonical(plan: dict) -> None:
    assert isinstance(plan["goals"], list)
    assert isinstance(plan["weeks"], list)
    for week in plan["weeks"]:
        for task in week["tasks"]:
            for key in REQUIRED_TASK_FIELDS:
                assert task[key] is not None, key


def test_classify_plan_shape() -> None:
    assert classify_plan_shape(_scalable_plan()) is PlanShape.SCALABLE
    assert classify_plan_shape(_legacy_plan()) is PlanShape.LEGACY


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "not a plan",
        [],
        {},
        {"goals": []},
        {"goals": "Learn things"},
        {"goals": [{"title": "A"}], "weeks": "three"},
    ],
)
def test_malformed_plans_are_rejected(raw) -> None:
    with pytest.raises(MalformedPlanError):
        normalize_plan(raw)


def test_plan_without_any_task_is_rejected() -> None:
    raw = {"goals": [{"title": "A"}], "weeks": [{"week": 1, "tasks": []}]}

    with pytest.raises(MalformedPlanError):
        normalize_plan(raw)


def test_scalable_plan_gets_task_defaults() -> None:
    plan = normalize_plan(_scalable_plan())

    _assert_canonical(plan)
    first, second = plan["weeks"][0]["tasks"]
    assert first["estTime"] == 45
    assert first["day"] == "Mon"
    assert first["skillCategory"] == "general"
    assert first["difficultyLevel"] == "beginner"
    assert second["estTime"] == 20
    assert plan["weeks"][0]["focus"] == "Getting oriented"
    assert plan["habitTips"] == ["Work in short sessions"]


def test_scalable_week_number_and_theme_default_to_position() -> None:
    plan = normalize_plan(_scalable_plan())

    second_week = plan["weeks"][1]
    assert second_week["week"] == 2
    assert second_week["theme"] == "Week 2"
    task = second_week["tasks"][0]
    assert task["goalIndex"] == 1
    assert task["estTime"] == 30
    assert task["rationale"] == "Momentum"


def test_legacy_plan_spreads_goals_over_three_weeks() -> None:
    plan = normalize_plan(_legacy_plan(goal_count=6, tasks_per_goal=2))

    _assert_canonical(plan)
    assert len(plan["weeks"]) == 3
    assert [week["theme"] for week in plan["weeks"]] == ["Week 1 Goals", "Week 2 Goals", "Week 3 Goals"]
    goal_indexes_per_week = [sorted({task["goalIndex"] for task in week["tasks"]}) for week in plan["weeks"]]
    assert goal_indexes_per_week == [[0, 1], [2, 3], [4, 5]]
    assert sum(len(week["tasks"]) for week in plan["weeks"]) == 12
    assert plan["weeks"][0]["tasks"][0]["title"] == "Goal 0 task 0"
    assert plan["weeks"][0]["tasks"][0]["estTime"] == 25


def test_legacy_goal_without_tasks_becomes_focus_task() -> None:
    raw = {
        "goals": [
            {"title": "Write daily", "description": "Build a writing habit"},
            {"title": "Publish", "tasks": [{"title": "Pick a platform", "day": "friday"}]},
        ]
    }

    plan = normalize_plan(raw)

    week_one = plan["weeks"][0]["tasks"]
    assert week_one[0]["title"] == "Focus on Write daily"
    assert week_one[0]["estTime"] == 60
    assert week_one[0]["rationale"] == "Build a writing habit"
    week_two = plan["weeks"][1]["tasks"]
    assert week_two[0]["title"] == "Pick a platform"
    assert week_two[0]["day"] == "Fri"
    assert week_two[0]["goalIndex"] == 1
    assert plan["weeks"][2]["tasks"] == []


def test_normalize_does_not_mutate_input() -> None:
    raw = _scalable_plan()
    snapshot = copy.deepcopy(raw)

    normalize_plan(raw)

    assert raw == snapshot


def test_normalize_is_idempotent() -> None:
    once = normalize_plan(_legacy_plan())
    twice = normalize_plan(once)

    assert twice == once


@pytest.mark.parametrize("minutes", [float("inf"), "1e999", "-Infinity", "nan"])
def test_unrepresentable_minutes_fall_back_to_default(minutes) -> None:
    raw = {
        "goals": [{"title": "A"}],
        "weeks": [{"week": 1, "tasks": [{"goalIndex": float("inf"), "title": "Read", "estTime": minutes}]}],
    }

    task = normalize_plan(raw)["weeks"][0]["tasks"][0]

    assert task["estTime"] == 30
    assert task["goalIndex"] == 0
    assert task["title"] == "Read"


def test_non_positive_week_numbers_use_position() -> None:
    raw = {
        "goals": [{"title": "A"}],
        "weeks": [
            {"week": 0, "tasks": [{"goalIndex": 0, "title": "One"}]},
            {"week": -2, "tasks": [{"goalIndex": 0, "title": "Two"}]},
        ],
    }

    plan = normalize_plan(raw)

    assert [week["week"] for week in plan["weeks"]] == [1, 2]
    assert [week["theme"] for week in plan["weeks"]] == ["Week 1", "Week 2"]


def test_task_entry_model_fills_defaults_and_keeps_extra_keys() -> None:
    entry = PlanTaskEntry.model_validate(
        {"title": {"activity": "Sketch"}, "duration": "25 minutes", "rationale": "  ", "goalIndex": "2"},
        context={"position": 3},
    )

    dumped = entry.model_dump()
    assert dumped["estTime"] == 25
    assert dumped["day"] == round_robin_day(3)
    assert dumped["rationale"] == "This task contributes to your journey towards your dream"
    assert dumped["goalIndex"] == 2
    assert dumped["title"] == {"activity": "Sketch"}
    assert dumped["duration"] == "25 minutes"
