"""Task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import JSONBCompat

DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced")
IMPACT_LEVELS = ("low", "medium", "high")


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id", "user_id"),
        Index("ix_tasks_goal_id", "goal_id"),
        Index("ix_tasks_dream_id", "dream_id"),
        Index("ix_tasks_completed", "completed"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # Null for reflection tasks, which belong to the week rather than a goal.
    goal_id = Column(UUID(as_uuid=True), ForeignKey("goals.id", ondelete="SET NULL"), nullable=True)
    dream_id = Column(UUID(as_uuid=True), ForeignKey("dreams.id", ondelete="SET NULL"), nullable=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    est_time = Column(Integer, nullable=False, server_default=sa_text("30"), default=30)
    day = Column(String(length=3), nullable=False)
    completed = Column(Boolean, nullable=False, server_default=sa_text("false"), default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    is_reflection = Column(Boolean, nullable=False, server_default=sa_text("false"), default=False)
    rationale = Column(Text, nullable=False)
    skill_category = Column(String(length=100), nullable=False, server_default=sa_text("'general'"), default="general")
    difficulty_level = Column(String(length=20), nullable=False, server_default=sa_text("'beginner'"), default="beginner")
    metrics_impacted = Column(JSONBCompat, nullable=False, default=list)
    adaptive_metadata = Column(JSONBCompat, nullable=False, default=dict)
    goal_index = Column(Integer, nullable=True)
    week_number = Column(Integer, nullable=True)
    # Column named "metadata" but attribute renamed to avoid Base.metadata collisions.
    metadata_json = Column("metadata", JSONBCompat, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
