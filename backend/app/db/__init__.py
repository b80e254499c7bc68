"""Database layer modules and public helpers."""

from app.db.enums import TASK_PENDING_STATUSES, TASK_STATUS_LABELS, TaskStatus
from app.db.models import Project, Task, TaskComment
from app.db.session import get_session

__all__ = [
    "Project",
    "TASK_PENDING_STATUSES",
    "TASK_STATUS_LABELS",
    "Task",
    "TaskComment",
    "TaskStatus",
    "get_session",
]
