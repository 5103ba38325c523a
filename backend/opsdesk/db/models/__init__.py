"""ORM models exposed for metadata discovery."""
from opsdesk.db.models.activity_log import TaskActivityLog
from opsdesk.db.models.recurring_task import RecurringTask
from opsdesk.db.models.task import Task
from opsdesk.db.models.user import User

__all__ = [
    "RecurringTask",
    "Task",
    "TaskActivityLog",
    "User",
]
