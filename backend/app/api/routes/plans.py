"""Daily plan API routes."""
from __future__ import annotations

import logging
import time
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.api.schemas.plans import (
    CalendarEventOut,
    CalendarEventsResponse,
    DailyPlanResponse,
    PlanDiagnosticOut,
    PlanTask,
    ScheduleBlockOut,
)
from app.core.config import settings
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.calendar.factory import get_calendar_gateways
from app.services.calendar.retry import CalendarRetryClient, RetryPolicy
from app.services.planning.daily_planner import DailyPlanner
from app.services.planning.errors import CircularDependencyError
from app.services.planning.types import DailyPlan, PlanningTask
from app.services.preferences_service import SqlPreferencesStore
from app.services.task_repository import SqlTaskRepository

router = APIRouter()
logger = logging.getLogger(__name__)


def get_calendar_clients() -> List[CalendarRetryClient]:
    """One retrying client per configured calendar provider."""
    policy = RetryPolicy.from_settings(settings)
    return [CalendarRetryClient(gateway, policy) for gateway in get_calendar_gateways(settings)]


def _build_planner(db: Session, calendars: List[CalendarRetryClient]) -> DailyPlanner:
    return DailyPlanner(
        SqlTaskRepository(db),
        SqlPreferencesStore(db),
        calendars,
        default_timezone=settings.planner_timezone,
    )


@router.get("/plans/today", response_model=DailyPlanResponse, tags=["plans"])
async def get_daily_plan(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID to plan for"),
    plan_date: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    calendars: List[CalendarRetryClient] = Depends(get_calendar_clients),
) -> DailyPlanResponse:
    """Generate an energy-aware schedule for one day (today in the planner timezone by default)."""
    request_id = getattr(http_request.state, "request_id", None)
    target_date = plan_date or _today()
    metadata: Dict[str, Any] = {
        "route": "/plans/today",
        "user_id": str(user_id),
        "date": target_date.isoformat(),
        "request_id": request_id,
    }

    planner = _build_planner(db, calendars)
    deadline = time.monotonic() + settings.plan_request_timeout_seconds
    start = time.perf_counter()
    try:
        with trace("daily_plan.generate", metadata=metadata, user_id=str(user_id), request_id=request_id):
            plan = await planner.generate_plan(str(user_id), target_date, deadline=deadline)
        await run_in_threadpool(db.commit)
    except CircularDependencyError as exc:
        await run_in_threadpool(db.rollback)
        log_metric("daily_plan.circular_dependency", 1, metadata={"user_id": str(user_id)})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"could not generate plan: circular dependency involving task {exc.task_id}",
        ) from exc
    except Exception:
        await run_in_threadpool(db.rollback)
        raise

    latency_ms = (time.perf_counter() - start) * 1000
    metric_meta = {"user_id": str(user_id), "date": target_date.isoformat()}
    log_metric("daily_plan.success", 1, metadata=metric_meta)
    log_metric("daily_plan.latency_ms", latency_ms, metadata=metric_meta)
    log_metric("daily_plan.scheduled_blocks", len(plan.schedule_blocks), metadata=metric_meta)
    log_metric("daily_plan.energy_optimization", plan.energy_optimization, metadata=metric_meta)
    log_metric("daily_plan.deadline_risk", plan.deadline_risk, metadata=metric_meta)
    if not plan.calendar_complete:
        log_metric("daily_plan.calendar_incomplete", 1, metadata=metric_meta)

    return _serialize_plan(plan, request_id or "")


@router.get("/plans/calendar-events", response_model=CalendarEventsResponse, tags=["plans"])
async def get_calendar_events(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID whose calendars to read"),
    plan_date: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    calendars: List[CalendarRetryClient] = Depends(get_calendar_clients),
) -> CalendarEventsResponse:
    """Busy intervals from every configured calendar for one day."""
    request_id = getattr(http_request.state, "request_id", None)
    target_date = plan_date or _today()

    planner = _build_planner(db, calendars)
    deadline = time.monotonic() + settings.plan_request_timeout_seconds
    try:
        with trace(
            "daily_plan.calendar_events",
            metadata={"route": "/plans/calendar-events", "date": target_date.isoformat()},
            user_id=str(user_id),
            request_id=request_id,
        ):
            load = await planner.get_calendar_events(str(user_id), target_date, deadline=deadline)
        await run_in_threadpool(db.commit)
    except Exception:
        await run_in_threadpool(db.rollback)
        raise

    log_metric("calendar_events.count", len(load.commitments), metadata={"user_id": str(user_id)})

    return CalendarEventsResponse(
        date=target_date,
        events=[
            CalendarEventOut(
                start_time=slot.start_time,
                end_time=slot.end_time,
                title=slot.title,
                description=slot.description,
                source=slot.source,
                event_id=slot.event_id,
                is_all_day=slot.is_all_day,
                energy_level=slot.energy_level,
                focus_types=list(slot.preferred_focus_types),
            )
            for slot in load.commitments
        ],
        calendar_complete=load.complete,
        diagnostics=_serialize_diagnostics(load.diagnostics),
        request_id=request_id or "",
    )


def _today() -> date:
    try:
        zone = ZoneInfo(settings.planner_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Invalid PLANNER_TIMEZONE %r; using UTC for today's date", settings.planner_timezone)
        zone = timezone.utc
    return datetime.now(zone).date()


def _serialize_task(task: PlanningTask) -> PlanTask:
    return PlanTask(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        energy_level=task.energy_level,
        focus_type=task.focus_type,
        estimated_minutes=task.estimated_minutes,
        hard_deadline=task.hard_deadline,
    )


def _serialize_diagnostics(diagnostics) -> List[PlanDiagnosticOut]:
    return [PlanDiagnosticOut(code=item.code, message=item.message) for item in diagnostics]


def _serialize_plan(plan: DailyPlan, request_id: str) -> DailyPlanResponse:
    return DailyPlanResponse(
        date=plan.date,
        schedule_blocks=[
            ScheduleBlockOut(
                start_time=block.start_time,
                end_time=block.end_time,
                task=_serialize_task(block.task),
                energy_match=block.energy_match,
                focus_match=block.focus_match,
                reasoning=block.reasoning,
            )
            for block in plan.schedule_blocks
        ],
        unscheduled_tasks=[_serialize_task(task) for task in plan.unscheduled_tasks],
        total_estimated_minutes=plan.total_estimated_minutes,
        energy_optimization=plan.energy_optimization,
        focus_optimization=plan.focus_optimization,
        deadline_risk=plan.deadline_risk,
        calendar_complete=plan.calendar_complete,
        diagnostics=_serialize_diagnostics(plan.diagnostics),
        request_id=request_id,
    )
