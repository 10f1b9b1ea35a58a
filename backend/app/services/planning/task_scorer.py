"""Weighted priority scoring for ready tasks."""
from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from typing import Dict, Iterable, List, Optional

from app.services.planning.types import EnergyLevel, FocusType, PlanningTask, ScoredTask

PRIORITY_WEIGHT = 8
DEADLINE_MAX_SCORE = 30
DEADLINE_DECAY_PER_DAY = 5

ENERGY_SCORES: Dict[EnergyLevel, int] = {
    EnergyLevel.HIGH: 20,
    EnergyLevel.MEDIUM: 15,
    EnergyLevel.LOW: 10,
}

FOCUS_SCORES: Dict[FocusType, int] = {
    FocusType.CREATIVE: 8,
    FocusType.TECHNICAL: 8,
    FocusType.ADMINISTRATIVE: 6,
    FocusType.SOCIAL: 10,
}

_SECONDS_PER_DAY = 24 * 60 * 60


def score_task(task: PlanningTask, plan_date: date, tz: Optional[tzinfo] = None) -> ScoredTask:
    """Compute the four sub-scores for one task relative to the plan date."""
    priority_score = float(task.priority * PRIORITY_WEIGHT) if task.priority else 0.0

    deadline_score = 0.0
    if task.hard_deadline is not None:
        days_until = max(0.0, _days_between(plan_date, task.hard_deadline, tz))
        deadline_score = max(0.0, DEADLINE_MAX_SCORE - days_until * DEADLINE_DECAY_PER_DAY)

    energy_score = float(ENERGY_SCORES[task.energy_level or EnergyLevel.MEDIUM])
    focus_score = float(FOCUS_SCORES[task.focus_type or FocusType.ADMINISTRATIVE])

    return ScoredTask(
        task=task,
        score=priority_score + deadline_score + energy_score + focus_score,
        priority_score=priority_score,
        deadline_score=deadline_score,
        energy_score=energy_score,
        focus_score=focus_score,
    )


def score_tasks(tasks: Iterable[PlanningTask], plan_date: date, tz: Optional[tzinfo] = None) -> List[ScoredTask]:
    """Score and sort descending; ``sorted`` is stable so equal scores keep input order."""
    scored = [score_task(task, plan_date, tz) for task in tasks]
    return sorted(scored, key=lambda item: item.score, reverse=True)


def _days_between(plan_date: date, deadline: datetime, tz: Optional[tzinfo]) -> float:
    zone = tz or timezone.utc
    start_of_day = datetime.combine(plan_date, time.min, tzinfo=zone)
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=zone)
    return (deadline - start_of_day).total_seconds() / _SECONDS_PER_DAY
