from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.errors import error_response_docs
from app.core.auth import CurrentActor, DbSession
from app.core.config import get_settings
from app.db.enums import TaskStatus
from app.db.models import Task, TaskComment
from app.db.repositories import Pagination, ProjectRepository, TaskRepository
from app.services import (
    GetTasksFilters,
    ProposeStatusCommand,
    ReorderItem,
    ReorderTasksCommand,
    TaskCreateCommand,
    TaskService,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    parent_id: UUID | None = None
    project_id: UUID | None = None
    # tasks always start in To Do; kept so older clients can still send it
    status_id: int | None = None
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Draft the release notes",
                "description": "Summarize the changes merged this sprint.",
                "project_id": "3f2b6d0e-8a8e-4c55-9a4b-2f7f1c0d8e11",
                "parent_id": None,
            }
        }
    )


class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    status_id: TaskStatus | None = None
    is_delegated: bool | None = None
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Draft and publish the release notes",
                "is_delegated": True,
            }
        }
    )


class TaskRead(BaseModel):
    id: UUID
    project_id: UUID
    parent_id: UUID | None
    title: str
    description: str | None
    status_id: int
    status_before_proposal: int | None
    position: int
    is_delegated: bool
    created_by_ai: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TaskCommentRead(BaseModel):
    id: UUID
    task_id: UUID
    comment: str
    author_is_ai: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PaginationRead(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class TaskListResponse(BaseModel):
    data: list[TaskRead]
    pagination: PaginationRead


class ProposeStatusRequest(BaseModel):
    new_status_id: int
    comment: str = Field(min_length=1)
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "new_status_id": 2,
                "comment": "Release notes are published in the wiki.",
            }
        }
    )


class RejectProposalRequest(BaseModel):
    comment: str = Field(min_length=1)


class ReorderItemRequest(BaseModel):
    id: UUID
    position: int


class ReorderRequest(BaseModel):
    items: list[ReorderItemRequest]
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "items": [
                    {"id": "0d7c1c55-30a4-4b0b-9a55-3f6f0c2f8b01", "position": 2},
                    {"id": "6b1f5a2e-1c9d-4e1a-8f3b-1b2c3d4e5f60", "position": 1},
                ]
            }
        }
    )


def get_task_service(session: DbSession) -> TaskService:
    settings = get_settings()
    return TaskService(
        TaskRepository(session),
        ProjectRepository(session),
        position_retry_attempts=settings.task_position_retry_attempts,
        max_page_size=settings.task_page_size_max,
    )


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]


def _to_read(task: Task) -> TaskRead:
    return TaskRead.model_validate(task)


def _comment_to_read(comment: TaskComment) -> TaskCommentRead:
    return TaskCommentRead.model_validate(comment)


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    responses=error_response_docs(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_422_UNPROCESSABLE_CONTENT,
    ),
)
def create_task(payload: TaskCreate, actor: CurrentActor, service: TaskServiceDep) -> TaskRead:
    task = service.create_task(
        TaskCreateCommand(
            title=payload.title,
            description=payload.description,
            parent_id=payload.parent_id,
            project_id=payload.project_id,
            status_id=payload.status_id,
        ),
        actor,
    )
    return _to_read(task)


@router.get(
    "",
    response_model=TaskListResponse,
    responses=error_response_docs(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_404_NOT_FOUND,
    ),
)
def list_tasks(
    actor: CurrentActor,
    service: TaskServiceDep,
    project_id: UUID | None = Query(default=None),
    parent_id: UUID | None = Query(default=None),
    status_id: TaskStatus | None = Query(default=None),
    is_delegated: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> TaskListResponse:
    page_size = limit if limit is not None else get_settings().task_page_size_default
    result = service.get_tasks(
        GetTasksFilters(
            project_id=project_id,
            parent_id=parent_id,
            status_id=status_id.value if status_id is not None else None,
            is_delegated=is_delegated,
        ),
        Pagination(page=page, page_size=page_size),
        actor,
    )
    return TaskListResponse(
        data=[_to_read(task) for task in result.items],
        pagination=PaginationRead(
            page=result.page,
            limit=result.page_size,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.post(
    "/reorder",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=error_response_docs(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
    ),
)
def reorder_tasks(
    payload: ReorderRequest,
    actor: CurrentActor,
    service: TaskServiceDep,
) -> Response:
    service.reorder_tasks(
        actor,
        ReorderTasksCommand(
            items=tuple(ReorderItem(id=item.id, position=item.position) for item in payload.items)
        ),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{task_id}",
    response_model=TaskRead,
    responses=error_response_docs(status.HTTP_401_UNAUTHORIZED, status.HTTP_404_NOT_FOUND),
)
def get_task(task_id: UUID, actor: CurrentActor, service: TaskServiceDep) -> TaskRead:
    return _to_read(service.get_task(task_id, actor))


@router.patch(
    "/{task_id}",
    response_model=TaskRead,
    responses=error_response_docs(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_422_UNPROCESSABLE_CONTENT,
    ),
)
def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    actor: CurrentActor,
    service: TaskServiceDep,
) -> TaskRead:
    patch = payload.model_dump(exclude_unset=True)
    if "status_id" in patch and patch["status_id"] is not None:
        patch["status_id"] = int(patch["status_id"])
    return _to_read(service.update_task(task_id, patch, actor))


@router.get(
    "/{task_id}/comments",
    response_model=list[TaskCommentRead],
    responses=error_response_docs(status.HTTP_401_UNAUTHORIZED, status.HTTP_404_NOT_FOUND),
)
def list_task_comments(
    task_id: UUID,
    actor: CurrentActor,
    service: TaskServiceDep,
) -> list[TaskCommentRead]:
    return [_comment_to_read(comment) for comment in service.get_task_comments(task_id, actor)]


@router.post(
    "/{task_id}/propose-status",
    response_model=TaskRead,
    responses=error_response_docs(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
    ),
)
def propose_task_status(
    task_id: UUID,
    payload: ProposeStatusRequest,
    actor: CurrentActor,
    service: TaskServiceDep,
) -> TaskRead:
    task = service.propose_task_status(
        task_id,
        ProposeStatusCommand(new_status_id=payload.new_status_id, comment=payload.comment),
        actor,
    )
    return _to_read(task)


@router.post(
    "/{task_id}/accept-proposal",
    response_model=TaskRead,
    responses=error_response_docs(
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
    ),
)
def accept_status_proposal(task_id: UUID, actor: CurrentActor, service: TaskServiceDep) -> TaskRead:
    return _to_read(service.accept_status_proposal(task_id, actor))


@router.post(
    "/{task_id}/reject-proposal",
    response_model=TaskRead,
    responses=error_response_docs(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
    ),
)
def reject_proposal(
    task_id: UUID,
    payload: RejectProposalRequest,
    actor: CurrentActor,
    service: TaskServiceDep,
) -> TaskRead:
    return _to_read(service.reject_proposal(task_id, actor, payload.comment))
