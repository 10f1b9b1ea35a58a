"""User ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    # IANA zone name used to lay out the planning day; falls back to PLANNER_TIMEZONE.
    timezone = Column(String(length=64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
