"""Energy-aware daily plan generation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo
from typing import Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from starlette.concurrency import run_in_threadpool

from app.observability.tracing import trace
from app.services.calendar.errors import CalendarIntegrationError
from app.services.calendar.events import deduplicate_commitments
from app.services.calendar.retry import CalendarRetryClient
from app.services.planning.dependency_resolver import DependencyResolver
from app.services.planning.plan_assembler import assemble_plan
from app.services.planning.ports import PreferencesStore, TaskRepository
from app.services.planning.slot_assigner import assign_tasks_to_slots
from app.services.planning.task_scorer import score_tasks
from app.services.planning.time_slots import TimeSlotGenerator
from app.services.planning.types import (
    DailyPlan,
    DependencyEdge,
    PlanDiagnostic,
    PlanningTask,
    SchedulingPreferences,
    TimeSlot,
)

logger = logging.getLogger(__name__)

CALENDAR_INCOMPLETE_NOTE = "Calendar data may be incomplete; the plan assumes no other commitments."


@dataclass(frozen=True)
class CommitmentLoad:
    commitments: Tuple[TimeSlot, ...]
    complete: bool
    diagnostics: Tuple[PlanDiagnostic, ...] = ()


@dataclass(frozen=True)
class PlanningSnapshot:
    all_tasks: Tuple[PlanningTask, ...]
    candidates: Tuple[PlanningTask, ...]
    dependencies: Dict[str, List[DependencyEdge]]
    preferences: SchedulingPreferences


class DailyPlanner:
    """Build a DailyPlan from read-only snapshots of tasks, preferences and calendars.

    Repository reads run in a worker thread and the calendar fetch is awaited.
    Everything after that is pure computation over the snapshot, so identical
    inputs give identical plans.
    """

    def __init__(
        self,
        tasks: TaskRepository,
        preferences: PreferencesStore,
        calendars: Sequence[CalendarRetryClient] = (),
        *,
        default_timezone: str = "UTC",
        log: Optional[logging.Logger] = None,
    ):
        self._tasks = tasks
        self._preferences = preferences
        self._calendars = tuple(calendars)
        self._default_timezone = default_timezone
        self._log = log or logger
        self._resolver = DependencyResolver(log=self._log)
        self._slot_generator = TimeSlotGenerator(log=self._log)

    async def generate_plan(
        self,
        user_id: str,
        plan_date: date,
        *,
        deadline: Optional[float] = None,
    ) -> DailyPlan:
        """Plan ``plan_date`` for ``user_id``.

        Raises CircularDependencyError when the open tasks form a cycle; every
        other problem degrades the plan and is reported in ``diagnostics``.
        """
        self._log.info("Generating plan for user %s on %s", user_id, plan_date.isoformat())

        snapshot = await run_in_threadpool(self.take_snapshot, user_id)
        preferences = snapshot.preferences
        tz, tz_diagnostics = self._resolve_timezone(preferences)

        load = await self.load_commitments(user_id, plan_date, preferences, tz=tz, deadline=deadline)

        resolution = self._resolver.resolve(
            snapshot.candidates, snapshot.dependencies, known_tasks=snapshot.all_tasks
        )
        scored = score_tasks(resolution.ready_tasks, plan_date, tz)
        slots = self._slot_generator.generate(plan_date, preferences, load.commitments, tz)
        assignments = assign_tasks_to_slots(scored, slots.slots)

        plan = assemble_plan(
            plan_date,
            scored,
            assignments,
            calendar_complete=load.complete,
            diagnostics=tz_diagnostics + load.diagnostics + slots.diagnostics,
        )
        self._log.info(
            "Plan for user %s on %s: %d scheduled, %d unscheduled, %d blocked",
            user_id,
            plan_date.isoformat(),
            len(plan.schedule_blocks),
            len(plan.unscheduled_tasks),
            resolution.blocked_count,
        )
        return plan

    async def get_calendar_events(
        self,
        user_id: str,
        plan_date: date,
        *,
        deadline: Optional[float] = None,
    ) -> CommitmentLoad:
        """Commitments for the calendar view, fetched with the same degradation rules."""
        preferences = await run_in_threadpool(self._preferences.get_or_create, user_id)
        tz, tz_diagnostics = self._resolve_timezone(preferences)
        load = await self.load_commitments(user_id, plan_date, preferences, tz=tz, deadline=deadline)
        return CommitmentLoad(
            commitments=load.commitments,
            complete=load.complete,
            diagnostics=tz_diagnostics + load.diagnostics,
        )

    def take_snapshot(self, user_id: str) -> PlanningSnapshot:
        """Read tasks, open-task dependencies and preferences in one blocking pass."""
        all_tasks = tuple(self._tasks.find_tasks_for_user(user_id))
        candidates = tuple(task for task in all_tasks if task.is_candidate)
        dependencies = {task.id: list(self._tasks.find_dependencies(task.id)) for task in candidates}
        return PlanningSnapshot(
            all_tasks=all_tasks,
            candidates=candidates,
            dependencies=dependencies,
            preferences=self._preferences.get_or_create(user_id),
        )

    async def load_commitments(
        self,
        user_id: str,
        plan_date: date,
        preferences: SchedulingPreferences,
        *,
        tz: tzinfo,
        deadline: Optional[float] = None,
    ) -> CommitmentLoad:
        """Fetch every configured calendar; failures become empty results plus a diagnostic."""
        start_of_day = datetime.combine(plan_date, time.min, tzinfo=tz)
        end_of_day = datetime.combine(plan_date, time.max, tzinfo=tz)

        collected: List[TimeSlot] = []
        diagnostics: List[PlanDiagnostic] = []
        complete = True
        for client in self._calendars:
            for calendar_id in preferences.calendar_ids or ("primary",):
                with trace(
                    "calendar.fetch",
                    metadata={"source": client.source, "calendar_id": calendar_id, "date": plan_date.isoformat()},
                    user_id=user_id,
                ):
                    try:
                        result = await client.fetch_commitments(
                            user_id, calendar_id, start_of_day, end_of_day, deadline=deadline, tz=tz
                        )
                    except CalendarIntegrationError as exc:
                        complete = False
                        self._log.warning(
                            "Calendar %s/%s unavailable for user %s (%s after %d attempt(s)); planning without it",
                            client.source,
                            calendar_id,
                            user_id,
                            exc.category.value,
                            exc.attempts,
                        )
                        diagnostics.append(
                            PlanDiagnostic(
                                code="calendar_unavailable",
                                message=f"{client.source} calendar {calendar_id}: {exc.category.value}. "
                                f"{CALENDAR_INCOMPLETE_NOTE}",
                            )
                        )
                        continue
                collected.extend(result.commitments)
                if result.skipped_events:
                    diagnostics.append(
                        PlanDiagnostic(
                            code="calendar_event_skipped",
                            message=f"{result.skipped_events} malformed {client.source} event(s) ignored",
                        )
                    )

        commitments = deduplicate_commitments(collected)
        if len(commitments) != len(collected):
            self._log.info("Removed %d duplicate calendar events", len(collected) - len(commitments))
        return CommitmentLoad(commitments=tuple(commitments), complete=complete, diagnostics=tuple(diagnostics))

    def _resolve_timezone(self, preferences: SchedulingPreferences) -> Tuple[tzinfo, Tuple[PlanDiagnostic, ...]]:
        name = preferences.timezone or self._default_timezone
        try:
            return ZoneInfo(name), ()
        except (ZoneInfoNotFoundError, ValueError):
            message = f"Unknown timezone {name!r}; planning in UTC"
            self._log.warning(message)
            return timezone.utc, (PlanDiagnostic(code="timezone_defaulted", message=message),)
