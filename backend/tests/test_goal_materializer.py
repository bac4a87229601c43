from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.errors import EmptyMaterializationError, TaskNameUnresolvableError
from app.db.base import Base
from app.db.models.dream import Dream
from app.db.models.goal import Goal
from app.db.models.task import Task
from app.db.models.user import User
from app.services.goal_materializer import layout_plan, materialize_plan, resolve_task_name
from app.services.plan_normalizer import normalize_plan

THURSDAY = date(2024, 1, 4)


def _session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db():
    session = _session()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def dream(db):
    user_id = uuid4()
    db.add(User(id=user_id))
    db.flush()
    record = Dream(
        user_id=user_id,
        dream_text="Become a data scientist in healthcare",
        confidence=60,
        time_horizon=8,
        learning_style="reading",
        time_commitment="micro-burst",
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def _plan() -> dict:
    return normalize_plan(
        {
            "goals": [
                {"title": "Statistics", "description": "Brush up on statistics"},
                {"title": "Portfolio"},
            ],
            "weeks": [
                {
                    "week": 1,
                    "theme": "Foundation",
                    "tasks": [
                        {"goalIndex": 0, "title": "Review probability", "day": "Mon", "estTime": 40},
                        {"goalIndex": 0, "title": "Sunday recap", "day": "Sun"},
                        {"goalIndex": 1, "title": "Pick a dataset", "day": "Fri", "metricsImpacted": ["clarity"]},
                    ],
                },
                {
                    "week": 2,
                    "theme": "Practice",
                    "tasks": [
                        {"goalIndex": 0, "title": {"description": "no activity here"}},
                        {"goalIndex": 1, "title": "Clean the dataset", "day": "Tue"},
                        {"goalIndex": 7, "title": "Points at a missing goal"},
                    ],
                },
            ],
        }
    )


def _materialize(db, dream, plan, today=THURSDAY, method="ai"):
    goal_ids = materialize_plan(
        db,
        user_id=dream.user_id,
        dream=dream,
        plan=plan,
        today=today,
        generation_method=method,
    )
    db.commit()
    return goal_ids


@pytest.mark.parametrize(
    ("entry", "expected"),
    [
        ({"title": "Read a book"}, ("Read a book", None)),
        ({"name": "Call a mentor", "duration": "15"}, ("Call a mentor", 15)),
        ({"title": {"activity": "Research"}, "duration": "45"}, ("Research", 45)),
        ({"activity": "Journal", "duration": "10 minutes"}, ("Journal", 10)),
    ],
)
def test_resolve_task_name_variants(entry, expected) -> None:
    assert resolve_task_name(entry) == expected


@pytest.mark.parametrize("entry", [{}, {"title": "   "}, {"title": {"description": "x"}}, {"title": {"activity": ""}}])
def test_resolve_task_name_rejects_unnamed_entries(entry) -> None:
    with pytest.raises(TaskNameUnresolvableError):
        resolve_task_name(entry)


def test_layout_skips_goals_without_resolvable_tasks() -> None:
    layout = layout_plan(_plan())

    assert [[goal.goal_index for goal in week.goals] for week in layout] == [[0, 1], [1]]
    assert layout[0].goals[0].title == "Statistics - Week 1"


def test_every_goal_gets_at_least_one_task(db, dream) -> None:
    goal_ids = _materialize(db, dream, _plan())

    assert len(goal_ids) == 3
    for goal_id in goal_ids:
        goal = db.get(Goal, goal_id)
        tasks = db.execute(select(Task).where(Task.goal_id == goal_id)).scalars().all()
        assert tasks
        assert set(goal.task_ids) == {task.id for task in tasks}
        assert goal.dream_id == dream.id
        assert goal.category == "journey"


def test_goals_carry_week_metadata(db, dream) -> None:
    goal_ids = _materialize(db, dream, _plan())
    goals = [db.get(Goal, goal_id) for goal_id in goal_ids]

    assert [goal.title for goal in goals] == ["Statistics - Week 1", "Portfolio - Week 1", "Portfolio - Week 2"]
    assert [goal.journey_week for goal in goals] == [1, 1, 2]
    assert goals[0].week_of == THURSDAY
    assert goals[2].week_of == date(2024, 1, 8)
    assert goals[2].journey_theme == "Practice"
    assert goals[0].description == "Brush up on statistics"


def test_past_days_move_to_today_but_sunday_stays(db, dream) -> None:
    goal_ids = _materialize(db, dream, _plan())
    tasks = db.execute(select(Task).where(Task.goal_id == goal_ids[0])).scalars().all()
    by_name = {task.name: task for task in tasks}

    assert by_name["Review probability"].day == "Thu"
    assert by_name["Review probability"].est_time == 40
    assert by_name["Sunday recap"].day == "Sun"


def test_task_defaults_and_metric_impacts(db, dream) -> None:
    goal_ids = _materialize(db, dream, _plan())
    task = db.execute(select(Task).where(Task.goal_id == goal_ids[1])).scalar_one()

    assert task.name == "Pick a dataset"
    assert task.day == "Fri"
    assert task.est_time == 30
    assert task.skill_category == "general"
    assert task.difficulty_level == "beginner"
    assert task.metrics_impacted[0]["metric"] == "clarity"
    assert task.metrics_impacted[0]["expectedImpact"] == "medium"
    assert task.adaptive_metadata["generationMethod"] == "ai_generated"
    assert task.adaptive_metadata["timeCommitmentStyle"] == "micro-burst"
    assert task.goal_index == 1
    assert task.week_number == 1


def test_reflection_tasks_for_first_three_weeks(db, dream) -> None:
    plan = normalize_plan(
        {
            "goals": [{"title": "Habit"}],
            "weeks": [
                {"week": week, "tasks": [{"goalIndex": 0, "title": f"Practice {week}"}]} for week in range(1, 6)
            ],
        }
    )

    _materialize(db, dream, plan, method="fallback")

    reflections = db.execute(
        select(Task).where(Task.is_reflection.is_(True)).order_by(Task.week_number)
    ).scalars().all()
    assert [task.week_number for task in reflections] == [1, 2, 3]
    assert all(task.goal_id is None and task.day == "Sun" for task in reflections)
    assert all(task.dream_id == dream.id for task in reflections)
    assert {impact["metric"] for impact in reflections[0].metrics_impacted} == {"clarity", "commitment"}
    assert reflections[0].adaptive_metadata["generationMethod"] == "template_based"


def test_nested_activity_title_uses_duration(db, dream) -> None:
    plan = {
        "goals": [{"title": "Explore"}],
        "weeks": [{"week": 1, "theme": "Start", "tasks": [{"goalIndex": 0, "title": {"activity": "Research"}, "duration": "45"}]}],
    }

    goal_ids = _materialize(db, dream, plan)

    task = db.execute(select(Task).where(Task.goal_id == goal_ids[0])).scalar_one()
    assert task.name == "Research"
    assert task.est_time == 45


def test_plan_without_resolvable_tasks_writes_nothing(db, dream) -> None:
    plan = {
        "goals": [{"title": "Ghost"}],
        "weeks": [{"week": 1, "tasks": [{"goalIndex": 0, "title": {"note": "no activity"}}]}],
    }

    with pytest.raises(EmptyMaterializationError):
        materialize_plan(
            db,
            user_id=dream.user_id,
            dream=dream,
            plan=plan,
            today=THURSDAY,
            generation_method="ai",
        )

    assert db.execute(select(func.count()).select_from(Goal)).scalar_one() == 0
    assert db.execute(select(func.count()).select_from(Task)).scalar_one() == 0


def test_non_positive_week_numbers_fall_back_to_position() -> None:
    plan = {
        "goals": [{"title": "Habit"}],
        "weeks": [
            {"week": 0, "tasks": [{"goalIndex": 0, "title": "First"}]},
            {"week": -4, "tasks": [{"goalIndex": 0, "title": "Second"}]},
            {"week": "soon", "tasks": [{"goalIndex": 0, "title": "Third"}]},
        ],
    }

    layout = layout_plan(plan)

    assert [week.week_number for week in layout] == [1, 2, 3]
    assert [week.goals[0].title for week in layout] == ["Habit - Week 1", "Habit - Week 2", "Habit - Week 3"]


def test_negative_week_gets_positional_reflection_and_default_minutes(db, dream) -> None:
    plan = {
        "goals": [{"title": "Habit"}],
        "weeks": [
            {"week": -1, "tasks": [{"goalIndex": 0, "title": "Stretch", "estTime": float("inf")}]},
            {"week": 2, "tasks": [{"goalIndex": 0, "title": "Walk", "estTime": "1e999"}]},
        ],
    }

    _materialize(db, dream, plan)

    tasks = db.execute(select(Task).where(Task.is_reflection.is_(False)).order_by(Task.week_number)).scalars().all()
    assert [(task.week_number, task.est_time) for task in tasks] == [(1, 30), (2, 30)]
    reflections = db.execute(select(Task).where(Task.is_reflection.is_(True))).scalars().all()
    assert sorted(task.week_number for task in reflections) == [1, 2]
    journey_weeks = db.execute(select(Goal.journey_week).order_by(Goal.journey_week)).scalars().all()
    assert journey_weeks == [1, 2]
