"""Domain records consumed and produced by the daily planning engine.

Everything here is an immutable snapshot: the engine reads tasks, preferences
and calendar commitments once per run and never writes back.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

DEFAULT_TASK_MINUTES = 30


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    BLOCKED = "blocked"


class EnergyLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class FocusType(str, Enum):
    CREATIVE = "CREATIVE"
    TECHNICAL = "TECHNICAL"
    ADMINISTRATIVE = "ADMINISTRATIVE"
    SOCIAL = "SOCIAL"


@dataclass(frozen=True)
class PlanningTask:
    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: Optional[int] = None
    energy_level: Optional[EnergyLevel] = None
    focus_type: Optional[FocusType] = None
    estimated_minutes: Optional[int] = None
    hard_deadline: Optional[datetime] = None

    @property
    def duration_minutes(self) -> int:
        return self.estimated_minutes or DEFAULT_TASK_MINUTES

    @property
    def is_urgent(self) -> bool:
        """Urgent tasks drive the deadline-risk metric."""
        return self.hard_deadline is not None and self.priority is not None and self.priority > 3

    @property
    def is_candidate(self) -> bool:
        """Only open, unblocked tasks are considered for a plan."""
        return self.status not in (TaskStatus.DONE, TaskStatus.BLOCKED)


@dataclass(frozen=True)
class DependencyEdge:
    task_id: str
    depends_on_id: str


@dataclass(frozen=True)
class SchedulingPreferences:
    morning_energy_level: EnergyLevel = EnergyLevel.HIGH
    afternoon_energy_level: EnergyLevel = EnergyLevel.MEDIUM
    work_start_time: str = "09:00"
    work_end_time: str = "17:00"
    focus_session_length: int = 90
    preferred_focus_types: Tuple[FocusType, ...] = ()
    calendar_ids: Tuple[str, ...] = ("primary",)
    timezone: Optional[str] = None


@dataclass(frozen=True)
class TimeSlot:
    start_time: datetime
    end_time: datetime
    energy_level: EnergyLevel
    preferred_focus_types: Tuple[FocusType, ...]
    is_available: bool = True
    # Populated only for busy intervals parsed from an external calendar.
    source: Optional[str] = None
    event_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    is_all_day: bool = False

    @property
    def duration_minutes(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 60

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open interval overlap test."""
        return start < self.end_time and end > self.start_time


@dataclass(frozen=True)
class ScoredTask:
    task: PlanningTask
    score: float
    priority_score: float
    deadline_score: float
    energy_score: float
    focus_score: float


@dataclass(frozen=True)
class Assignment:
    task: PlanningTask
    time_slot: TimeSlot
    energy_match: float
    focus_match: float
    reasoning: str


@dataclass(frozen=True)
class ScheduleBlock:
    start_time: datetime
    end_time: datetime
    task: PlanningTask
    energy_match: float
    focus_match: float
    reasoning: str


@dataclass(frozen=True)
class PlanDiagnostic:
    code: str
    message: str


@dataclass(frozen=True)
class DailyPlan:
    date: date
    schedule_blocks: Tuple[ScheduleBlock, ...]
    unscheduled_tasks: Tuple[PlanningTask, ...]
    total_estimated_minutes: int
    energy_optimization: float
    focus_optimization: float
    deadline_risk: float
    calendar_complete: bool = True
    diagnostics: Tuple[PlanDiagnostic, ...] = field(default_factory=tuple)
