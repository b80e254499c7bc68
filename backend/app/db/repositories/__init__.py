from app.db.repositories.common import Page, Pagination, StaleTaskStateError
from app.db.repositories.project_repository import ProjectRepository
from app.db.repositories.task_repository import TaskFilters, TaskRepository

__all__ = [
    "Page",
    "Pagination",
    "ProjectRepository",
    "StaleTaskStateError",
    "TaskFilters",
    "TaskRepository",
]
