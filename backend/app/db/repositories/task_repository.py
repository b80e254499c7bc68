from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, cast
from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import Session, col, select

from app.db.enums import TASK_PENDING_STATUSES, TaskStatus
from app.db.models import Project, Task, TaskComment, utc_now
from app.db.repositories.common import Page, Pagination, StaleTaskStateError, paginate
from app.orchestration.state_machine import resolve_rejected_status

PATCHABLE_TASK_FIELDS: frozenset[str] = frozenset(
    {"title", "description", "status_id", "is_delegated"}
)


@dataclass(frozen=True, slots=True)
class TaskFilters:
    """Listing scope. ``parent_id=None`` selects the top-level sibling group."""

    project_id: UUID
    parent_id: UUID | None = None
    status_id: int | None = None
    is_delegated: bool | None = None


class TaskRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, task_id: UUID) -> Task | None:
        return self.session.get(Task, task_id)

    def get_in_project(self, task_id: UUID, project_id: UUID) -> Task | None:
        statement = select(Task).where(Task.id == task_id).where(Task.project_id == project_id)
        return self.session.exec(statement).first()

    def get_with_project(self, task_id: UUID) -> tuple[Task, Project] | None:
        statement = (
            select(Task, Project)
            .join(Project, col(Project.id) == col(Task.project_id))
            .where(Task.id == task_id)
        )
        row = self.session.exec(statement).first()
        if row is None:
            return None
        task, project = row
        return task, project

    def list(self, *, filters: TaskFilters, pagination: Pagination) -> Page[Task]:
        statement = select(Task).where(Task.project_id == filters.project_id)
        if filters.parent_id is not None:
            statement = statement.where(Task.parent_id == filters.parent_id)
        else:
            statement = statement.where(col(Task.parent_id).is_(None))
        if filters.status_id is not None:
            statement = statement.where(Task.status_id == filters.status_id)
        if filters.is_delegated is not None:
            statement = statement.where(Task.is_delegated == filters.is_delegated)

        statement = statement.order_by(col(Task.position).asc(), col(Task.id).asc())
        return paginate(self.session, cast(Any, statement), pagination=pagination)

    def max_position(self, *, project_id: UUID, parent_id: UUID | None) -> int | None:
        statement = select(func.max(Task.position)).where(Task.project_id == project_id)
        if parent_id is not None:
            statement = statement.where(Task.parent_id == parent_id)
        else:
            statement = statement.where(col(Task.parent_id).is_(None))
        return self.session.exec(statement).one()

    def insert(self, task: Task) -> Task:
        self.session.add(task)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(task)
        return task

    def apply_patch(self, task: Task, values: Mapping[str, Any]) -> Task:
        unknown = set(values) - PATCHABLE_TASK_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be patched: {sorted(unknown)}")
        for field_name, value in values.items():
            setattr(task, field_name, value)
        if "status_id" in values:
            task.status_before_proposal = None
        task.updated_at = utc_now()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def set_status(self, task: Task, status: TaskStatus, *, expected_status_id: int) -> Task:
        """
        Write ``status`` only while the row still holds ``expected_status_id``.

        Clears any pending-proposal bookkeeping.

        Raises:
            StaleTaskStateError: The stored status changed since it was read.
        """
        statement = (
            update(Task)
            .where(col(Task.id) == task.id)
            .where(col(Task.status_id) == expected_status_id)
            .values(
                status_id=status.value,
                status_before_proposal=None,
                updated_at=utc_now(),
            )
        )
        try:
            result = self.session.exec(cast(Any, statement))
            if result.rowcount != 1:
                raise StaleTaskStateError(f"task {task.id} changed while updating its status")
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(task)
        return task

    def propose_task_status(
        self,
        *,
        task_id: UUID,
        new_status_id: int,
        comment_text: str,
        author_is_ai: bool,
    ) -> Task | None:
        """
        Store a proposed status and its comment in one transaction.

        The status seen before the first proposal is kept so a rejection can
        restore it; proposing again over a pending status keeps that value.

        Returns:
            Task | None: The updated task, or ``None`` when the task row is gone.

        Raises:
            StaleTaskStateError: The task changed between read and write.
        """
        task = self.get(task_id)
        if task is None:
            return None
        observed_status = task.status_id
        previous_status = (
            task.status_before_proposal
            if observed_status in TASK_PENDING_STATUSES
            else observed_status
        )
        statement = (
            update(Task)
            .where(col(Task.id) == task_id)
            .where(col(Task.status_id) == observed_status)
            .values(
                status_id=new_status_id,
                status_before_proposal=previous_status,
                updated_at=utc_now(),
            )
        )
        return self._apply_with_comment(
            task=task,
            statement=statement,
            comment_text=comment_text,
            author_is_ai=author_is_ai,
        )

    def reject_task_proposal(self, *, task_id: UUID, comment_text: str) -> Task | None:
        """
        Revert a pending proposal and store the human rejection comment atomically.

        Returns:
            Task | None: The updated task, or ``None`` when the task row is gone.

        Raises:
            StaleTaskStateError: The task is no longer pending.
        """
        task = self.get(task_id)
        if task is None:
            return None
        observed_status = task.status_id
        if observed_status not in TASK_PENDING_STATUSES:
            raise StaleTaskStateError(f"task {task_id} has no pending proposal")
        target_status = resolve_rejected_status(task.status_before_proposal)
        statement = (
            update(Task)
            .where(col(Task.id) == task_id)
            .where(col(Task.status_id) == observed_status)
            .values(
                status_id=target_status.value,
                status_before_proposal=None,
                updated_at=utc_now(),
            )
        )
        return self._apply_with_comment(
            task=task,
            statement=statement,
            comment_text=comment_text,
            author_is_ai=False,
        )

    def reassign_positions(self, tasks: Sequence[Task], positions: Mapping[UUID, int]) -> None:
        """
        Move a batch of siblings to new positions in one transaction.

        Positions are parked on negative values first so swaps inside the
        batch never trip the sibling uniqueness index.
        """
        try:
            for index, task in enumerate(tasks, start=1):
                task.position = -index
                self.session.add(task)
            self.session.flush()
            now = utc_now()
            for task in tasks:
                task.position = positions[task.id]
                task.updated_at = now
                self.session.add(task)
            self.session.flush()
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        for task in tasks:
            self.session.refresh(task)

    def list_comments(self, task_id: UUID) -> list[TaskComment]:
        statement = (
            select(TaskComment)
            .where(TaskComment.task_id == task_id)
            .order_by(col(TaskComment.created_at).asc())
        )
        return list(self.session.exec(statement).all())

    def _apply_with_comment(
        self,
        *,
        task: Task,
        statement: Any,
        comment_text: str,
        author_is_ai: bool,
    ) -> Task:
        try:
            result = self.session.exec(statement)
            if result.rowcount != 1:
                raise StaleTaskStateError(f"task {task.id} changed while updating its status")
            self.session.add(
                TaskComment(task_id=task.id, comment=comment_text, author_is_ai=author_is_ai)
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(task)
        return task
