"""Dream plan schema: users, dreams, goals, tasks, discovery projection, audit log."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "dreams",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dream_text", sa.Text(), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("time_horizon", sa.Integer(), nullable=False),
        sa.Column("learning_style", sa.String(length=20), nullable=False),
        sa.Column("time_commitment", sa.String(length=20), nullable=False),
        sa.Column(
            "archetype_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("plan_generated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("plan_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("journey_start_date", sa.Date(), nullable=True),
        sa.Column("current_day", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column(
            "goal_ids",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("plan_provider", sa.String(length=50), nullable=True),
        sa.Column("plan_model", sa.String(length=100), nullable=True),
        sa.Column("plan_method", sa.String(length=50), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("confidence BETWEEN 1 AND 100", name="ck_dreams_confidence"),
        sa.CheckConstraint("time_horizon >= 1", name="ck_dreams_time_horizon"),
        sa.CheckConstraint("current_day BETWEEN 1 AND 21", name="ck_dreams_current_day"),
    )
    op.create_index("ix_dreams_user_id", "dreams", ["user_id"], unique=False)

    op.create_table(
        "goals",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dream_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("week_of", sa.Date(), nullable=False),
        sa.Column(
            "task_ids",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("journey_week", sa.Integer(), nullable=True),
        sa.Column("journey_theme", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False, server_default=sa.text("'general'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["dream_id"], ["dreams.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_goals_user_id", "goals", ["user_id"], unique=False)
    op.create_index("ix_goals_dream_id", "goals", ["dream_id"], unique=False)

    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("goal_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("dream_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("est_time", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column("day", sa.String(length=3), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_reflection", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("rationale", sa.Text(), nullable=False),
        sa.Column("skill_category", sa.String(length=100), nullable=False, server_default=sa.text("'general'")),
        sa.Column("difficulty_level", sa.String(length=20), nullable=False, server_default=sa.text("'beginner'")),
        sa.Column(
            "metrics_impacted",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "adaptive_metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("goal_index", sa.Integer(), nullable=True),
        sa.Column("week_number", sa.Integer(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["goal_id"], ["goals.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["dream_id"], ["dreams.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_tasks_user_id", "tasks", ["user_id"], unique=False)
    op.create_index("ix_tasks_goal_id", "tasks", ["goal_id"], unique=False)
    op.create_index("ix_tasks_dream_id", "tasks", ["dream_id"], unique=False)
    op.create_index("ix_tasks_completed", "tasks", ["completed"], unique=False)

    op.create_table(
        "dream_discoveries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dream_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("week_themes", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("goal_progression", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("sub_goals", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("habit_formation_tips", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("milestones", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("progress_tracking_metrics", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["dream_id"], ["dreams.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "dream_id", name="uq_dream_discoveries_user_dream"),
    )

    op.create_table(
        "agent_actions_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dream_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action_type", sa.Text(), nullable=False),
        sa.Column(
            "action_payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["dream_id"], ["dreams.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_agent_actions_log_user_id", "agent_actions_log", ["user_id"], unique=False)
    op.create_index("ix_agent_actions_log_dream_id", "agent_actions_log", ["dream_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_agent_actions_log_dream_id", table_name="agent_actions_log")
    op.drop_index("ix_agent_actions_log_user_id", table_name="agent_actions_log")
    op.drop_table("agent_actions_log")
    op.drop_table("dream_discoveries")
    op.drop_index("ix_tasks_completed", table_name="tasks")
    op.drop_index("ix_tasks_dream_id", table_name="tasks")
    op.drop_index("ix_tasks_goal_id", table_name="tasks")
    op.drop_index("ix_tasks_user_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_goals_dream_id", table_name="goals")
    op.drop_index("ix_goals_user_id", table_name="goals")
    op.drop_table("goals")
    op.drop_index("ix_dreams_user_id", table_name="dreams")
    op.drop_table("dreams")
    op.drop_table("users")
