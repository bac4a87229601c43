"""Dream ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text as sa_text,
)
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import JSONBCompat, UUIDList

LEARNING_STYLES = ("visual", "auditory", "kinesthetic", "reading")
TIME_COMMITMENTS = ("micro-burst", "focused-blocks", "flexible-flow", "beast-mode")
DREAM_STATUSES = ("active", "completed", "paused", "archived")
MAX_JOURNEY_DAY = 21


class Dream(Base):
    __tablename__ = "dreams"
    __table_args__ = (
        Index("ix_dreams_user_id", "user_id"),
        CheckConstraint("confidence BETWEEN 1 AND 100", name="ck_dreams_confidence"),
        CheckConstraint("time_horizon >= 1", name="ck_dreams_time_horizon"),
        CheckConstraint(f"current_day BETWEEN 1 AND {MAX_JOURNEY_DAY}", name="ck_dreams_current_day"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    dream_text = Column(Text, nullable=False)
    confidence = Column(Integer, nullable=False)
    time_horizon = Column(Integer, nullable=False)
    learning_style = Column(String(length=20), nullable=False)
    time_commitment = Column(String(length=20), nullable=False)
    archetype_data = Column(JSONBCompat, nullable=False, default=dict)
    status = Column(String(length=20), nullable=False, server_default=sa_text("'active'"), default="active")
    plan_generated = Column(Boolean, nullable=False, server_default=sa_text("false"), default=False)
    plan_generated_at = Column(DateTime(timezone=True), nullable=True)
    journey_start_date = Column(Date, nullable=True)
    current_day = Column(Integer, nullable=False, server_default=sa_text("1"), default=1)
    # Ordered ids of the goals of the live plan; the Dream owns this list.
    goal_ids = Column(UUIDList, nullable=False, default=list)
    plan_provider = Column(String(length=50), nullable=True)
    plan_model = Column(String(length=100), nullable=True)
    plan_method = Column(String(length=50), nullable=True)
    version = Column(Integer, nullable=False, server_default=sa_text("1"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Optimistic lock: two concurrent plan runs cannot both commit.
    __mapper_args__ = {"version_id_col": version}
