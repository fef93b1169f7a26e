"""ORM models exposed for metadata discovery."""
from app.db.models.activity_log import ActivityLog
from app.db.models.daily_task_summary import DailyTaskSummary
from app.db.models.habit import Habit
from app.db.models.task import Task
from app.db.models.user import User

__all__ = [
    "ActivityLog",
    "DailyTaskSummary",
    "Habit",
    "Task",
    "User",
]
