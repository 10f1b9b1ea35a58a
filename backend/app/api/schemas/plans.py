"""Schemas for daily plan responses."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel

from app.services.planning.types import EnergyLevel, FocusType, TaskStatus


class PlanTask(BaseModel):
    id: str
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: Optional[int]
    energy_level: Optional[EnergyLevel]
    focus_type: Optional[FocusType]
    estimated_minutes: Optional[int]
    hard_deadline: Optional[datetime]


class ScheduleBlockOut(BaseModel):
    start_time: datetime
    end_time: datetime
    task: PlanTask
    energy_match: float
    focus_match: float
    reasoning: str


class PlanDiagnosticOut(BaseModel):
    code: str
    message: str


class DailyPlanResponse(BaseModel):
    date: date
    schedule_blocks: List[ScheduleBlockOut]
    unscheduled_tasks: List[PlanTask]
    total_estimated_minutes: int
    energy_optimization: float
    focus_optimization: float
    deadline_risk: float
    calendar_complete: bool
    diagnostics: List[PlanDiagnosticOut]
    request_id: str


class CalendarEventOut(BaseModel):
    start_time: datetime
    end_time: datetime
    title: Optional[str]
    description: Optional[str]
    source: Optional[str]
    event_id: Optional[str]
    is_all_day: bool
    energy_level: EnergyLevel
    focus_types: List[FocusType]


class CalendarEventsResponse(BaseModel):
    date: date
    events: List[CalendarEventOut]
    calendar_complete: bool
    diagnostics: List[PlanDiagnosticOut]
    request_id: str
