"""Task lifecycle and delegation state machine.

Every operation takes a resolved actor (a human user or the AI agent bound to
one project), runs its domain checks before touching storage, and reports
failures as ``TaskServiceError`` with a ``TaskErrorKind``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.logging import bind_log_context, get_logger
from app.db.enums import TaskStatus
from app.db.models import Project, Task, TaskComment
from app.db.repositories import (
    Page,
    Pagination,
    ProjectRepository,
    StaleTaskStateError,
    TaskFilters,
    TaskRepository,
)
from app.db.repositories.task_repository import PATCHABLE_TASK_FIELDS
from app.orchestration.authorization import (
    Actor,
    AiActor,
    Deny,
    HumanActor,
    authorize,
    check_patch_fields,
    is_allowed,
    require_actor,
    require_ai,
    require_human,
)
from app.orchestration.errors import TaskErrorKind, TaskServiceError
from app.orchestration.positions import next_position
from app.orchestration.state_machine import (
    INITIAL_TASK_STATUS,
    ensure_rejectable,
    resolve_accepted_status,
    resolve_proposed_status,
)

logger = get_logger("dlg.services.tasks")

DEFAULT_POSITION_RETRY_ATTEMPTS = 3
DEFAULT_MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class TaskCreateCommand:
    title: str
    description: str | None = None
    parent_id: UUID | None = None
    project_id: UUID | None = None
    # Accepted for compatibility with clients that send it; never stored.
    status_id: int | None = None


@dataclass(frozen=True, slots=True)
class GetTasksFilters:
    project_id: UUID | None = None
    parent_id: UUID | None = None
    status_id: int | None = None
    is_delegated: bool | None = None


@dataclass(frozen=True, slots=True)
class ProposeStatusCommand:
    new_status_id: int
    comment: str


@dataclass(frozen=True, slots=True)
class ReorderItem:
    id: UUID
    position: int


@dataclass(frozen=True, slots=True)
class ReorderTasksCommand:
    items: tuple[ReorderItem, ...] = field(default_factory=tuple)


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("task.storage_failed", action=action)
        raise TaskServiceError(TaskErrorKind.PERSISTENCE_ERROR) from exc


def _validation_error(message: str) -> TaskServiceError:
    return TaskServiceError(TaskErrorKind.VALIDATION_ERROR, message)


def _normalized_text(value: Any, *, field_name: str) -> str:
    if value is not None and not isinstance(value, str):
        raise _validation_error(f"{field_name} must be a string.")
    normalized = (value or "").strip()
    if not normalized:
        raise _validation_error(f"{field_name} must not be empty.")
    return normalized


class TaskService:
    def __init__(
        self,
        task_repo: TaskRepository,
        project_repo: ProjectRepository,
        *,
        position_retry_attempts: int = DEFAULT_POSITION_RETRY_ATTEMPTS,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
    ) -> None:
        self.task_repo = task_repo
        self.project_repo = project_repo
        self.position_retry_attempts = max(1, position_retry_attempts)
        self.max_page_size = max_page_size

    def create_task(self, command: TaskCreateCommand, actor: Actor | None) -> Task:
        resolved = require_actor(actor)
        created_by_ai = isinstance(resolved, AiActor)
        if isinstance(resolved, HumanActor):
            if command.project_id is None:
                raise _validation_error("Project ID is required to create a task.")
            project_id = command.project_id
        else:
            project_id = resolved.project_id
        title = _normalized_text(command.title, field_name="title")
        bind_log_context(project_id=project_id, actor=resolved.label)

        with _storage_errors("create_task"):
            project = self._load_visible_project(project_id, resolved)
            if command.parent_id is not None:
                self._ensure_parent_is_valid(
                    command.parent_id,
                    project=project,
                    created_by_ai=created_by_ai,
                )
            task = self._insert_with_next_position(
                project_id=project.id,
                parent_id=command.parent_id,
                title=title,
                description=command.description,
                created_by_ai=created_by_ai,
            )

        logger.info(
            "task.created",
            task_id=str(task.id),
            parent_id=str(task.parent_id) if task.parent_id else None,
            position=task.position,
            created_by_ai=task.created_by_ai,
        )
        return task

    def get_tasks(
        self,
        filters: GetTasksFilters,
        pagination: Pagination,
        actor: Actor | None,
    ) -> Page[Task]:
        resolved = require_actor(actor)
        if pagination.page_size > self.max_page_size:
            raise _validation_error(f"limit must be <= {self.max_page_size}.")
        if isinstance(resolved, HumanActor):
            if filters.project_id is None:
                raise _validation_error("Project ID is required for user-based queries.")
            project_id = filters.project_id
        else:
            # the key decides the project; a client-supplied filter is ignored
            project_id = resolved.project_id

        with _storage_errors("get_tasks"):
            self._load_visible_project(project_id, resolved)
            return self.task_repo.list(
                filters=TaskFilters(
                    project_id=project_id,
                    parent_id=filters.parent_id,
                    status_id=filters.status_id,
                    is_delegated=filters.is_delegated,
                ),
                pagination=pagination,
            )

    def get_task(self, task_id: UUID, actor: Actor | None) -> Task:
        resolved = require_actor(actor)
        with _storage_errors("get_task"):
            return self._load_visible_task(task_id, resolved)

    def get_task_comments(self, task_id: UUID, actor: Actor | None) -> list[TaskComment]:
        resolved = require_actor(actor)
        with _storage_errors("get_task_comments"):
            task = self._load_visible_task(task_id, resolved)
            return self.task_repo.list_comments(task.id)

    def update_task(
        self,
        task_id: UUID,
        patch: Mapping[str, Any],
        actor: Actor | None,
    ) -> Task:
        resolved = require_actor(actor)
        values = self._validate_patch(patch)
        bind_log_context(task_id=task_id, actor=resolved.label)

        field_decision = check_patch_fields(resolved, values)
        if isinstance(field_decision, Deny):
            logger.warning("task.update_denied", reason=field_decision.reason)
            raise TaskServiceError(TaskErrorKind.AUTHORIZATION_ERROR, field_decision.reason)

        with _storage_errors("update_task"):
            row = self.task_repo.get_with_project(task_id)
            if row is None:
                raise TaskServiceError(TaskErrorKind.TASK_NOT_FOUND)
            task, project = row
            decision = authorize(resolved, project, patch_fields=values)
            if isinstance(decision, Deny):
                if isinstance(resolved, AiActor):
                    raise TaskServiceError(TaskErrorKind.TASK_NOT_FOUND)
                logger.warning("task.update_denied", reason=decision.reason)
                raise TaskServiceError(TaskErrorKind.AUTHORIZATION_ERROR)
            updated = self.task_repo.apply_patch(task, values)

        logger.info("task.updated", fields=sorted(values), status_id=updated.status_id)
        return updated

    def propose_task_status(
        self,
        task_id: UUID,
        command: ProposeStatusCommand,
        actor: Actor | None,
    ) -> Task:
        ai = require_ai(require_actor(actor), action="propose a task status")
        comment = _normalized_text(command.comment, field_name="comment")
        bind_log_context(task_id=task_id, actor=ai.label)

        with _storage_errors("propose_task_status"):
            task = self.task_repo.get_in_project(task_id, ai.project_id)
            if task is None:
                raise TaskServiceError(
                    TaskErrorKind.TASK_NOT_FOUND,
                    "Task not found or AI does not have access.",
                )
            if not task.is_delegated:
                raise TaskServiceError(
                    TaskErrorKind.AUTHORIZATION_ERROR,
                    "AI can only propose status changes for delegated tasks.",
                )
            pending_status = resolve_proposed_status(command.new_status_id)
            previous_status_id = task.status_id
            try:
                updated = self.task_repo.propose_task_status(
                    task_id=task.id,
                    new_status_id=pending_status.value,
                    comment_text=comment,
                    author_is_ai=True,
                )
            except StaleTaskStateError as exc:
                raise TaskServiceError(
                    TaskErrorKind.INVALID_STATE,
                    "Task changed while the proposal was being stored.",
                ) from exc
            if updated is None:
                raise TaskServiceError(TaskErrorKind.TASK_NOT_FOUND)

        logger.info(
            "task.status_proposed",
            previous_status_id=previous_status_id,
            status_id=updated.status_id,
        )
        return updated

    def accept_status_proposal(self, task_id: UUID, actor: Actor | None) -> Task:
        human = require_human(require_actor(actor), action="accept a status proposal")
        bind_log_context(task_id=task_id, actor=human.label)

        with _storage_errors("accept_status_proposal"):
            task = self._load_owned_task(task_id, human)
            previous_status_id = task.status_id
            target_status = resolve_accepted_status(task.status_id)
            try:
                updated = self.task_repo.set_status(
                    task,
                    target_status,
                    expected_status_id=previous_status_id,
                )
            except StaleTaskStateError as exc:
                raise TaskServiceError(
                    TaskErrorKind.INVALID_STATE,
                    "Task changed while the proposal was being accepted.",
                ) from exc

        logger.info(
            "task.proposal_accepted",
            previous_status_id=previous_status_id,
            status_id=updated.status_id,
        )
        return updated

    def reject_proposal(self, task_id: UUID, actor: Actor | None, comment: str) -> Task:
        human = require_human(require_actor(actor), action="reject a status proposal")
        comment_text = _normalized_text(comment, field_name="comment")
        bind_log_context(task_id=task_id, actor=human.label)

        with _storage_errors("reject_proposal"):
            task = self._load_owned_task(task_id, human)
            previous_status_id = task.status_id
            ensure_rejectable(task.status_id)
            try:
                updated = self.task_repo.reject_task_proposal(
                    task_id=task.id,
                    comment_text=comment_text,
                )
            except StaleTaskStateError as exc:
                raise TaskServiceError(
                    TaskErrorKind.INVALID_STATE,
                    "This task is not awaiting acceptance and its proposal cannot be rejected.",
                ) from exc
            if updated is None:
                raise TaskServiceError(TaskErrorKind.TASK_NOT_FOUND)

        logger.info(
            "task.proposal_rejected",
            previous_status_id=previous_status_id,
            status_id=updated.status_id,
        )
        return updated

    def reorder_tasks(self, actor: Actor | None, command: ReorderTasksCommand) -> list[Task]:
        """
        Reassign positions for a batch of siblings, all or nothing.

        Every task must belong to a project owned by the caller and all of
        them must share one sibling scope. Nothing is written unless every
        check passes and the storage accepts the whole batch.
        """
        human = require_human(require_actor(actor), action="reorder tasks")
        positions = self._validate_reorder_items(command.items)
        bind_log_context(actor=human.label)

        with _storage_errors("reorder_tasks"):
            tasks: list[Task] = []
            for item in command.items:
                row = self.task_repo.get_with_project(item.id)
                if row is None or row[1].user_id != human.user_id:
                    raise TaskServiceError(
                        TaskErrorKind.TASK_NOT_FOUND,
                        f"Task {item.id} not found.",
                    )
                tasks.append(row[0])

            scopes = {(task.project_id, task.parent_id) for task in tasks}
            if len(scopes) > 1:
                raise _validation_error(
                    "All reordered tasks must share the same project and parent."
                )

            try:
                self.task_repo.reassign_positions(tasks, positions)
            except IntegrityError as exc:
                logger.warning("task.reorder_conflict", task_count=len(tasks))
                raise TaskServiceError(
                    TaskErrorKind.INVALID_STATE,
                    "Requested positions collide with other sibling tasks.",
                ) from exc

        logger.info("task.reordered", task_count=len(tasks))
        return tasks

    def _load_visible_project(self, project_id: UUID, actor: Actor) -> Project:
        project = self.project_repo.get(project_id)
        if project is None or not is_allowed(authorize(actor, project)):
            raise TaskServiceError(
                TaskErrorKind.PROJECT_NOT_FOUND,
                "Project not found or user does not have access.",
            )
        return project

    def _load_visible_task(self, task_id: UUID, actor: Actor) -> Task:
        row = self.task_repo.get_with_project(task_id)
        if row is None or not is_allowed(authorize(actor, row[1])):
            raise TaskServiceError(TaskErrorKind.TASK_NOT_FOUND)
        return row[0]

    def _load_owned_task(self, task_id: UUID, human: HumanActor) -> Task:
        # a foreign task is reported exactly like a missing one
        return self._load_visible_task(task_id, human)

    def _ensure_parent_is_valid(
        self,
        parent_id: UUID,
        *,
        project: Project,
        created_by_ai: bool,
    ) -> None:
        parent = self.task_repo.get(parent_id)
        if parent is None:
            raise TaskServiceError(TaskErrorKind.TASK_NOT_FOUND, "Parent task not found.")
        if parent.project_id != project.id:
            raise TaskServiceError(
                TaskErrorKind.AUTHORIZATION_ERROR,
                "Parent task does not belong to the specified project.",
            )
        if created_by_ai and not parent.is_delegated:
            raise TaskServiceError(
                TaskErrorKind.AUTHORIZATION_ERROR,
                "AI can only create sub-tasks for delegated tasks.",
            )

    def _insert_with_next_position(
        self,
        *,
        project_id: UUID,
        parent_id: UUID | None,
        title: str,
        description: str | None,
        created_by_ai: bool,
    ) -> Task:
        last_conflict: IntegrityError | None = None
        for attempt in range(1, self.position_retry_attempts + 1):
            position = next_position(self.task_repo, project_id=project_id, parent_id=parent_id)
            task = Task(
                project_id=project_id,
                parent_id=parent_id,
                title=title,
                description=description,
                status_id=INITIAL_TASK_STATUS.value,
                position=position,
                is_delegated=False,
                created_by_ai=created_by_ai,
            )
            try:
                return self.task_repo.insert(task)
            except IntegrityError as exc:
                last_conflict = exc
                logger.warning(
                    "task.position_conflict",
                    attempt=attempt,
                    max_attempts=self.position_retry_attempts,
                    position=position,
                )
        raise TaskServiceError(
            TaskErrorKind.PERSISTENCE_ERROR,
            "Could not allocate a unique task position.",
        ) from last_conflict

    def _validate_patch(self, patch: Mapping[str, Any]) -> dict[str, Any]:
        if not patch:
            raise _validation_error("At least one field must be provided.")
        unknown = sorted(set(patch) - PATCHABLE_TASK_FIELDS)
        if unknown:
            raise _validation_error(f"Unsupported fields: {', '.join(unknown)}.")

        values = dict(patch)
        if "title" in values:
            values["title"] = _normalized_text(values["title"], field_name="title")
        if "is_delegated" in values and not isinstance(values["is_delegated"], bool):
            raise _validation_error("is_delegated must be a boolean.")
        if "status_id" in values:
            try:
                values["status_id"] = TaskStatus(values["status_id"]).value
            except ValueError as exc:
                raise _validation_error(f"Unknown status_id {values['status_id']!r}.") from exc
        return values

    @staticmethod
    def _validate_reorder_items(items: tuple[ReorderItem, ...]) -> dict[UUID, int]:
        if not items:
            raise _validation_error("At least one task must be reordered.")
        positions: dict[UUID, int] = {}
        for item in items:
            if item.id in positions:
                raise _validation_error(f"Task {item.id} appears more than once.")
            if item.position < 1:
                raise _validation_error("Positions must be >= 1.")
            positions[item.id] = item.position
        if len(set(positions.values())) != len(positions):
            raise _validation_error("Positions must be unique within the batch.")
        return positions
