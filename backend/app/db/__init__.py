"""Planner persistence: declarative base and the ORM models registered on it."""

from app.db.base import Base
from app.db.models import Task, TaskDependency, User, UserSchedulingPreferences

__all__ = ["Base", "Task", "TaskDependency", "User", "UserSchedulingPreferences"]
