"""Schemas for task management."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.services.planning.types import EnergyLevel, FocusType, TaskStatus


class TaskCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    energy_level: Optional[EnergyLevel] = None
    focus_type: Optional[FocusType] = None
    estimated_minutes: Optional[int] = Field(default=None, gt=0)
    hard_deadline: Optional[datetime] = None


class TaskUpdateRequest(BaseModel):
    """Partial update; only fields present in the payload are changed."""

    user_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    energy_level: Optional[EnergyLevel] = None
    focus_type: Optional[FocusType] = None
    estimated_minutes: Optional[int] = Field(default=None, gt=0)
    hard_deadline: Optional[datetime] = None


class TaskSummary(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: Optional[int]
    energy_level: Optional[EnergyLevel]
    focus_type: Optional[FocusType]
    estimated_minutes: Optional[int]
    hard_deadline: Optional[datetime]
    depends_on: List[UUID]
    created_at: datetime
    updated_at: datetime


class TaskDependencyRequest(BaseModel):
    user_id: UUID
    depends_on_id: UUID


class TaskDependencyResponse(BaseModel):
    task_id: UUID
    depends_on_id: UUID
    status: Literal["created", "exists"]
    request_id: str
