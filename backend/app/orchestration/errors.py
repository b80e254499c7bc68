from __future__ import annotations

from enum import StrEnum


class TaskErrorKind(StrEnum):
    AUTHENTICATION_REQUIRED = "authentication_required"
    VALIDATION_ERROR = "validation_error"
    PROJECT_NOT_FOUND = "project_not_found"
    TASK_NOT_FOUND = "task_not_found"
    AUTHORIZATION_ERROR = "authorization_error"
    INVALID_STATE = "invalid_state"
    PERSISTENCE_ERROR = "persistence_error"


DEFAULT_ERROR_MESSAGES: dict[TaskErrorKind, str] = {
    TaskErrorKind.AUTHENTICATION_REQUIRED: "Authentication required.",
    TaskErrorKind.VALIDATION_ERROR: "Request validation failed.",
    TaskErrorKind.PROJECT_NOT_FOUND: "Project not found.",
    TaskErrorKind.TASK_NOT_FOUND: "Task not found.",
    TaskErrorKind.AUTHORIZATION_ERROR: "You are not authorized to perform this action.",
    TaskErrorKind.INVALID_STATE: "The action cannot be performed in the current state.",
    TaskErrorKind.PERSISTENCE_ERROR: "Unexpected server error.",
}


class TaskServiceError(Exception):
    """A typed failure of the task core; ``kind`` decides how callers react."""

    def __init__(self, kind: TaskErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or DEFAULT_ERROR_MESSAGES[kind]
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"TaskServiceError(kind={self.kind.value!r}, message={self.message!r})"
