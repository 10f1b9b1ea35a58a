"""Collaborators the planner reads from."""
from __future__ import annotations

from typing import List, Protocol

from app.services.planning.types import DependencyEdge, PlanningTask, SchedulingPreferences


class TaskRepository(Protocol):
    def find_tasks_for_user(self, user_id: str) -> List[PlanningTask]:
        ...

    def find_dependencies(self, task_id: str) -> List[DependencyEdge]:
        ...


class PreferencesStore(Protocol):
    def get_or_create(self, user_id: str) -> SchedulingPreferences:
        """Return stored preferences, creating the defaults on first use."""
        ...
