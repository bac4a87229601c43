"""Denormalized discovery projection for journey visualization."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import JSONBCompat


class DreamDiscovery(Base):
    __tablename__ = "dream_discoveries"
    __table_args__ = (UniqueConstraint("user_id", "dream_id", name="uq_dream_discoveries_user_dream"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    dream_id = Column(UUID(as_uuid=True), ForeignKey("dreams.id", ondelete="CASCADE"), nullable=False)
    week_themes = Column(JSONBCompat, nullable=False, default=list)
    goal_progression = Column(JSONBCompat, nullable=False, default=dict)
    sub_goals = Column(JSONBCompat, nullable=False, default=dict)
    habit_formation_tips = Column(JSONBCompat, nullable=False, default=list)
    milestones = Column(JSONBCompat, nullable=False, default=list)
    progress_tracking_metrics = Column(JSONBCompat, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
