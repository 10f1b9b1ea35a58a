"""Greedy task-to-slot assignment."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set

from app.services.planning.types import Assignment, PlanningTask, ScoredTask, TimeSlot

ENERGY_WEIGHT = 0.4
FOCUS_WEIGHT = 0.3
DURATION_WEIGHT = 0.3


def energy_match(task: PlanningTask, slot: TimeSlot) -> float:
    if task.energy_level is None:
        return 0.5
    return 1.0 if task.energy_level == slot.energy_level else 0.3


def focus_match(task: PlanningTask, slot: TimeSlot) -> float:
    if task.focus_type is None:
        return 0.5
    return 1.0 if task.focus_type in slot.preferred_focus_types else 0.4


def duration_fit(task: PlanningTask, slot: TimeSlot) -> float:
    task_minutes = task.duration_minutes
    slot_minutes = slot.duration_minutes
    if task_minutes <= slot_minutes:
        return 1.0
    return max(0.0, 1 - (task_minutes - slot_minutes) / slot_minutes)


def slot_fitness(task: PlanningTask, slot: TimeSlot) -> float:
    return (
        energy_match(task, slot) * ENERGY_WEIGHT
        + focus_match(task, slot) * FOCUS_WEIGHT
        + duration_fit(task, slot) * DURATION_WEIGHT
    )


def scheduling_reasoning(task: PlanningTask, energy: float, focus: float) -> str:
    reasons: List[str] = []
    if energy > 0.8 and task.energy_level is not None:
        reasons.append(f"energy level matches ({task.energy_level.value})")
    if focus > 0.8 and task.focus_type is not None:
        reasons.append(f"focus type aligns ({task.focus_type.value})")
    if task.hard_deadline is not None:
        reasons.append("deadline consideration")
    if task.priority is not None and task.priority > 3:
        reasons.append("high priority")
    if not reasons:
        return "Best available slot"
    return f"Scheduled due to: {', '.join(reasons)}"


def find_best_slot(task: PlanningTask, slots: Sequence[TimeSlot], used: Set[int]) -> Optional[int]:
    """Index of the best unused slot; the first slot wins ties."""
    best_index: Optional[int] = None
    best_score = -1.0
    for index, slot in enumerate(slots):
        if index in used:
            continue
        score = slot_fitness(task, slot)
        if score > best_score:
            best_score = score
            best_index = index
    return best_index


def assign_tasks_to_slots(scored_tasks: Sequence[ScoredTask], slots: Sequence[TimeSlot]) -> Dict[str, Assignment]:
    """Walk tasks from highest score down, giving each its best remaining slot.

    Returns assignments keyed by task id in acceptance order. Tasks left
    without a slot are simply absent from the result.
    """
    assignments: Dict[str, Assignment] = {}
    used: Set[int] = set()
    for scored in scored_tasks:
        task = scored.task
        if task.id in assignments:
            continue
        index = find_best_slot(task, slots, used)
        if index is None:
            continue
        slot = slots[index]
        energy = energy_match(task, slot)
        focus = focus_match(task, slot)
        assignments[task.id] = Assignment(
            task=task,
            time_slot=slot,
            energy_match=energy,
            focus_match=focus,
            reasoning=scheduling_reasoning(task, energy, focus),
        )
        used.add(index)
    return assignments
