"""Per-user scheduling preferences ORM model."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base
from app.db.types import JSONBCompat


class UserSchedulingPreferences(Base):
    __tablename__ = "user_scheduling_preferences"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    morning_energy_level = Column(String(length=10), nullable=False, default="HIGH")
    afternoon_energy_level = Column(String(length=10), nullable=False, default="MEDIUM")
    work_start_time = Column(String(length=5), nullable=False, default="09:00")
    work_end_time = Column(String(length=5), nullable=False, default="17:00")
    focus_session_length = Column(Integer, nullable=False, default=90)
    preferred_focus_types = Column(JSONBCompat, nullable=False, default=list)
    calendar_ids = Column(JSONBCompat, nullable=False, default=lambda: ["primary"])
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
