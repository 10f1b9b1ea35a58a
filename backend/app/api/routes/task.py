"""Task management API routes."""
from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import asc
from sqlalchemy.orm import Session

from app.api.schemas.task import (
    TaskCreateRequest,
    TaskDependencyRequest,
    TaskDependencyResponse,
    TaskSummary,
    TaskUpdateRequest,
)
from app.db.deps import get_db
from app.db.models.task import Task
from app.db.models.task_dependency import TaskDependency
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.planning.types import TaskStatus
from app.services.user_service import get_or_create_user

router = APIRouter()


@router.post("/tasks", response_model=TaskSummary, status_code=status.HTTP_201_CREATED, tags=["tasks"])
def create_task(
    payload: TaskCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskSummary:
    """Create a task for a user, creating the user row on first use."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace(
            "task.create",
            metadata={"route": "/tasks", "status": payload.status.value, "request_id": request_id},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            get_or_create_user(db, payload.user_id)
            task = Task(
                user_id=payload.user_id,
                title=payload.title.strip(),
                description=payload.description,
                status=payload.status.value,
                priority=payload.priority,
                energy_level=payload.energy_level.value if payload.energy_level else None,
                focus_type=payload.focus_type.value if payload.focus_type else None,
                estimated_minutes=payload.estimated_minutes,
                hard_deadline=payload.hard_deadline,
            )
            db.add(task)
            db.commit()
            db.refresh(task)
    except Exception:
        db.rollback()
        raise

    log_metric("task.create.success", 1, metadata={"user_id": str(payload.user_id)})
    return _serialize_task(task, [])


@router.get("/tasks", response_model=List[TaskSummary], tags=["tasks"])
def list_tasks(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the tasks"),
    status_filter: Optional[TaskStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
) -> List[TaskSummary]:
    """List a user's tasks in creation order, optionally filtered by status."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/tasks",
        "user_id": str(user_id),
        "status": status_filter.value if status_filter else None,
        "request_id": request_id,
    }

    with trace("task.list", metadata=metadata, user_id=str(user_id), request_id=request_id):
        query = db.query(Task).filter(Task.user_id == user_id)
        if status_filter:
            query = query.filter(Task.status == status_filter.value)
        tasks = query.order_by(asc(Task.created_at), asc(Task.id)).all()
        edges = _dependencies_by_task(db, [task.id for task in tasks])

    log_metric("task.list.count", len(tasks), metadata={"user_id": str(user_id)})
    return [_serialize_task(task, edges.get(task.id, [])) for task in tasks]


@router.patch("/tasks/{task_id}", response_model=TaskSummary, tags=["tasks"])
def update_task(
    task_id: UUID,
    payload: TaskUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskSummary:
    """Change task fields; only the fields sent are touched."""
    task = _get_owned_task(db, task_id, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)
    changes = payload.model_dump(exclude_unset=True, exclude={"user_id"})
    if "title" in changes and changes["title"] is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Title cannot be null")
    if "status" in changes and changes["status"] is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Status cannot be null")

    start = time.perf_counter()
    try:
        with trace(
            "task.update",
            metadata={
                "route": f"/tasks/{task_id}",
                "task_id": str(task_id),
                "fields": sorted(changes),
                "request_id": request_id,
            },
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            for field, value in changes.items():
                if isinstance(value, Enum):
                    value = value.value
                setattr(task, field, value)
            db.add(task)
            db.commit()
            db.refresh(task)
    except Exception:
        db.rollback()
        raise

    latency_ms = (time.perf_counter() - start) * 1000
    log_metric("task.update.success", 1, metadata={"user_id": str(payload.user_id), "task_id": str(task_id)})
    log_metric("task.update.latency_ms", latency_ms, metadata={"task_id": str(task_id)})

    edges = _dependencies_by_task(db, [task.id])
    return _serialize_task(task, edges.get(task.id, []))


@router.post(
    "/tasks/{task_id}/dependencies",
    response_model=TaskDependencyResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["tasks"],
)
def add_task_dependency(
    task_id: UUID,
    payload: TaskDependencyRequest,
    http_request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> TaskDependencyResponse:
    """Record that ``task_id`` cannot start until ``depends_on_id`` is done.

    Cycles are accepted here and rejected when a plan is generated.
    """
    if task_id == payload.depends_on_id:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="A task cannot depend on itself")
    _get_owned_task(db, task_id, payload.user_id)
    _get_owned_task(db, payload.depends_on_id, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)

    existing = (
        db.query(TaskDependency)
        .filter(TaskDependency.task_id == task_id, TaskDependency.depends_on_id == payload.depends_on_id)
        .one_or_none()
    )
    if existing:
        response.status_code = status.HTTP_200_OK
        return TaskDependencyResponse(
            task_id=task_id,
            depends_on_id=payload.depends_on_id,
            status="exists",
            request_id=request_id or "",
        )

    try:
        with trace(
            "task.dependency.create",
            metadata={"task_id": str(task_id), "depends_on_id": str(payload.depends_on_id)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            db.add(TaskDependency(task_id=task_id, depends_on_id=payload.depends_on_id))
            db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("task.dependency.created", 1, metadata={"user_id": str(payload.user_id)})
    return TaskDependencyResponse(
        task_id=task_id,
        depends_on_id=payload.depends_on_id,
        status="created",
        request_id=request_id or "",
    )


def _get_owned_task(db: Session, task_id: UUID, user_id: UUID) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    if task.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task does not belong to user")
    return task


def _dependencies_by_task(db: Session, task_ids: List[UUID]) -> Dict[UUID, List[UUID]]:
    if not task_ids:
        return {}
    rows = (
        db.query(TaskDependency)
        .filter(TaskDependency.task_id.in_(task_ids))
        .order_by(asc(TaskDependency.created_at), asc(TaskDependency.depends_on_id))
        .all()
    )
    mapping: Dict[UUID, List[UUID]] = {}
    for row in rows:
        mapping.setdefault(row.task_id, []).append(row.depends_on_id)
    return mapping


def _serialize_task(task: Task, depends_on: List[UUID]) -> TaskSummary:
    return TaskSummary(
        id=task.id,
        user_id=task.user_id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        energy_level=task.energy_level,
        focus_type=task.focus_type,
        estimated_minutes=task.estimated_minutes,
        hard_deadline=task.hard_deadline,
        depends_on=depends_on,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )
