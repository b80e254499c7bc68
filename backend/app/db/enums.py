from __future__ import annotations

from collections.abc import Mapping
from enum import IntEnum


class TaskStatus(IntEnum):
    TODO = 1
    DONE = 2
    CANCELED = 3
    DONE_PENDING_ACCEPTANCE = 4
    CANCELED_PENDING_CONFIRMATION = 5


TASK_STATUS_LABELS: Mapping[TaskStatus, str] = {
    TaskStatus.TODO: "To Do",
    TaskStatus.DONE: "Done",
    TaskStatus.CANCELED: "Canceled",
    TaskStatus.DONE_PENDING_ACCEPTANCE: "Done, pending acceptance",
    TaskStatus.CANCELED_PENDING_CONFIRMATION: "Canceled, pending confirmation",
}


TASK_PENDING_STATUSES: frozenset[TaskStatus] = frozenset(
    {
        TaskStatus.DONE_PENDING_ACCEPTANCE,
        TaskStatus.CANCELED_PENDING_CONFIRMATION,
    }
)
