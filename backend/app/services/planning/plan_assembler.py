"""Turn slot assignments into a DailyPlan with quality metrics."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping, Sequence, Tuple

from app.services.planning.types import (
    Assignment,
    DailyPlan,
    PlanDiagnostic,
    ScheduleBlock,
    ScoredTask,
)


@dataclass(frozen=True)
class OptimizationMetrics:
    energy_optimization: float
    focus_optimization: float
    deadline_risk: float


def build_schedule_blocks(assignments: Iterable[Assignment]) -> Tuple[ScheduleBlock, ...]:
    blocks = [
        ScheduleBlock(
            start_time=assignment.time_slot.start_time,
            end_time=assignment.time_slot.end_time,
            task=assignment.task,
            energy_match=assignment.energy_match,
            focus_match=assignment.focus_match,
            reasoning=assignment.reasoning,
        )
        for assignment in assignments
    ]
    return tuple(sorted(blocks, key=lambda block: block.start_time))


def calculate_optimization_metrics(
    blocks: Sequence[ScheduleBlock],
    scored_tasks: Sequence[ScoredTask],
) -> OptimizationMetrics:
    """Mean energy/focus match over scheduled blocks plus unscheduled-urgent share.

    All three metrics are 0 when nothing was scheduled. Deadline risk only
    counts tasks with both a hard deadline and priority > 3.
    """
    if not blocks:
        return OptimizationMetrics(energy_optimization=0.0, focus_optimization=0.0, deadline_risk=0.0)

    energy = sum(block.energy_match for block in blocks) / len(blocks)
    focus = sum(block.focus_match for block in blocks) / len(blocks)

    urgent_total = sum(1 for scored in scored_tasks if scored.task.is_urgent)
    urgent_scheduled = sum(1 for block in blocks if block.task.is_urgent)
    risk = 1 - (urgent_scheduled / urgent_total) if urgent_total else 0.0

    return OptimizationMetrics(
        energy_optimization=_clamp(energy),
        focus_optimization=_clamp(focus),
        deadline_risk=_clamp(risk),
    )


def assemble_plan(
    plan_date: date,
    scored_tasks: Sequence[ScoredTask],
    assignments: Mapping[str, Assignment],
    *,
    calendar_complete: bool = True,
    diagnostics: Sequence[PlanDiagnostic] = (),
) -> DailyPlan:
    blocks = build_schedule_blocks(assignments.values())
    metrics = calculate_optimization_metrics(blocks, scored_tasks)
    unscheduled = tuple(scored.task for scored in scored_tasks if scored.task.id not in assignments)
    return DailyPlan(
        date=plan_date,
        schedule_blocks=blocks,
        unscheduled_tasks=unscheduled,
        total_estimated_minutes=sum(block.task.duration_minutes for block in blocks),
        energy_optimization=metrics.energy_optimization,
        focus_optimization=metrics.focus_optimization,
        deadline_risk=metrics.deadline_risk,
        calendar_complete=calendar_complete,
        diagnostics=tuple(diagnostics),
    )


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))
