from app.services.project_service import ProjectService
from app.services.task_service import (
    GetTasksFilters,
    ProposeStatusCommand,
    ReorderItem,
    ReorderTasksCommand,
    TaskCreateCommand,
    TaskService,
)

__all__ = [
    "GetTasksFilters",
    "ProjectService",
    "ProposeStatusCommand",
    "ReorderItem",
    "ReorderTasksCommand",
    "TaskCreateCommand",
    "TaskService",
]
