"""Weekly goal ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import UUIDList


class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (
        Index("ix_goals_user_id", "user_id"),
        Index("ix_goals_dream_id", "dream_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    dream_id = Column(UUID(as_uuid=True), ForeignKey("dreams.id", ondelete="SET NULL"), nullable=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    # Start of the journey week; week 1 starts on the generation day.
    week_of = Column(Date, nullable=False)
    task_ids = Column(UUIDList, nullable=False, default=list)
    journey_week = Column(Integer, nullable=True)
    journey_theme = Column(Text, nullable=True)
    category = Column(String(length=50), nullable=False, server_default=sa_text("'general'"), default="general")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
