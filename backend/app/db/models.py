from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Index,
    SmallInteger,
    String,
    Text,
    text,
)
from sqlmodel import Field, SQLModel

from app.db.enums import TaskStatus


def utc_now() -> datetime:
    return datetime.now(UTC)


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(nullable=False, index=True)
    name: str = Field(sa_column=Column(String(length=120), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text(), nullable=True))
    api_key: UUID = Field(default_factory=uuid4, nullable=False, unique=True, index=True)
    created_at: datetime = Field(default_factory=utc_now, nullable=False, index=True)


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("status_id BETWEEN 1 AND 5", name="ck_tasks_status_id_range"),
        CheckConstraint(
            "status_before_proposal IS NULL OR status_before_proposal BETWEEN 1 AND 5",
            name="ck_tasks_status_before_proposal_range",
        ),
        CheckConstraint("parent_id IS NULL OR parent_id <> id", name="ck_tasks_parent_not_self"),
        Index(
            "uq_tasks_sibling_position",
            "project_id",
            text("coalesce(CAST(parent_id AS VARCHAR), '')"),
            "position",
            unique=True,
        ),
        Index("ix_tasks_project_parent", "project_id", "parent_id"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE", nullable=False)
    parent_id: UUID | None = Field(
        default=None,
        foreign_key="tasks.id",
        ondelete="CASCADE",
        nullable=True,
    )
    title: str = Field(sa_column=Column(String(length=255), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text(), nullable=True))
    status_id: int = Field(
        default=TaskStatus.TODO.value,
        sa_column=Column(SmallInteger(), nullable=False, index=True),
    )
    status_before_proposal: int | None = Field(
        default=None,
        sa_column=Column(SmallInteger(), nullable=True),
    )
    position: int = Field(nullable=False)
    is_delegated: bool = Field(default=False, nullable=False, index=True)
    created_by_ai: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)


class TaskComment(SQLModel, table=True):
    __tablename__ = "task_comments"
    __table_args__ = (Index("ix_task_comments_task_created", "task_id", "created_at"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", ondelete="CASCADE", nullable=False)
    comment: str = Field(sa_column=Column(Text(), nullable=False))
    author_is_ai: bool = Field(nullable=False)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
