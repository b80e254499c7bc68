from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from app.db.enums import TASK_STATUS_LABELS, TaskStatus

router = APIRouter(prefix="/task-statuses", tags=["task-statuses"])


class TaskStatusRead(BaseModel):
    id: int
    name: str


@router.get("", response_model=list[TaskStatusRead])
def list_task_statuses() -> list[TaskStatusRead]:
    return [
        TaskStatusRead(id=task_status.value, name=TASK_STATUS_LABELS[task_status])
        for task_status in sorted(TaskStatus)
    ]
