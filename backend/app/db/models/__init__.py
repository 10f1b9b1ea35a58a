"""ORM models exposed for metadata discovery."""
from app.db.models.scheduling_preferences import UserSchedulingPreferences
from app.db.models.task import Task
from app.db.models.task_dependency import TaskDependency
from app.db.models.user import User

__all__ = [
    "Task",
    "TaskDependency",
    "User",
    "UserSchedulingPreferences",
]
