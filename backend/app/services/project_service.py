from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import bind_log_context, get_logger
from app.db.models import Project
from app.db.repositories import ProjectRepository
from app.orchestration.authorization import Actor, require_actor, require_human
from app.orchestration.errors import TaskErrorKind, TaskServiceError

logger = get_logger("dlg.services.projects")


class ProjectService:
    def __init__(self, project_repo: ProjectRepository) -> None:
        self.project_repo = project_repo

    def regenerate_api_key(self, project_id: UUID, actor: Actor | None) -> Project:
        """Replace the project's API key; the previous key stops resolving at once."""
        human = require_human(require_actor(actor), action="regenerate a project API key")
        bind_log_context(project_id=project_id, actor=human.label)
        try:
            project = self.project_repo.get_owned(project_id, human.user_id)
            if project is None:
                raise TaskServiceError(
                    TaskErrorKind.PROJECT_NOT_FOUND,
                    "Project not found or user does not have access.",
                )
            rotated = self.project_repo.rotate_api_key(project)
        except SQLAlchemyError as exc:
            logger.exception("project.storage_failed", action="regenerate_api_key")
            raise TaskServiceError(TaskErrorKind.PERSISTENCE_ERROR) from exc

        # the key itself never goes to the log
        logger.info("project.api_key_rotated")
        return rotated
