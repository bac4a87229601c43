"""Audit trail of automated plan actions."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import JSONBCompat


class AgentActionLog(Base):
    __tablename__ = "agent_actions_log"
    __table_args__ = (
        Index("ix_agent_actions_log_user_id", "user_id"),
        Index("ix_agent_actions_log_dream_id", "dream_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    dream_id = Column(UUID(as_uuid=True), ForeignKey("dreams.id", ondelete="SET NULL"), nullable=True)
    # dream_plan_generated | dream_plan_retired | dream_discovery_plan_generated
    action_type = Column(Text, nullable=False)
    action_payload = Column(JSONBCompat, nullable=False, default=dict)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
