"""SQLAlchemy-backed task snapshots for the planner."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.orm import Session

from app.db.models.task import Task
from app.db.models.task_dependency import TaskDependency
from app.services.planning.types import (
    DependencyEdge,
    EnergyLevel,
    FocusType,
    PlanningTask,
    TaskStatus,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


class SqlTaskRepository:
    """Read-only view of a user's tasks and dependency edges."""

    def __init__(self, db: Session):
        self._db = db

    def find_tasks_for_user(self, user_id: str) -> List[PlanningTask]:
        rows = (
            self._db.query(Task)
            .filter(Task.user_id == UUID(str(user_id)))
            .order_by(asc(Task.created_at), asc(Task.id))
            .all()
        )
        return [to_planning_task(row) for row in rows]

    def find_dependencies(self, task_id: str) -> List[DependencyEdge]:
        rows = (
            self._db.query(TaskDependency)
            .filter(TaskDependency.task_id == UUID(str(task_id)))
            .order_by(asc(TaskDependency.created_at), asc(TaskDependency.depends_on_id))
            .all()
        )
        return [DependencyEdge(task_id=str(row.task_id), depends_on_id=str(row.depends_on_id)) for row in rows]


def to_planning_task(row: Task) -> PlanningTask:
    status = _enum_or_none(TaskStatus, row.status)
    if status is None:
        logger.warning("Task %s has unknown status %r; treating it as pending", row.id, row.status)
        status = TaskStatus.PENDING
    return PlanningTask(
        id=str(row.id),
        title=row.title,
        description=row.description,
        status=status,
        priority=row.priority,
        energy_level=_enum_or_none(EnergyLevel, row.energy_level),
        focus_type=_enum_or_none(FocusType, row.focus_type),
        estimated_minutes=row.estimated_minutes,
        hard_deadline=_as_aware(row.hard_deadline),
    )


def _enum_or_none(enum_type: Type[E], value: Optional[str]) -> Optional[E]:
    if value is None:
        return None
    try:
        return enum_type(value)
    except ValueError:
        return None


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on round trip; stored values are UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
