"""Exceptions raised by the planning engine."""
from __future__ import annotations


class PlanningError(Exception):
    """Base class for request-level planning failures."""


class CircularDependencyError(PlanningError):
    """The task graph contains a cycle, so no ready set can be computed."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(
            f"Circular dependency detected involving task {task_id}. Please resolve dependencies manually."
        )
