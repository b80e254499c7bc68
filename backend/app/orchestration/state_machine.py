from __future__ import annotations

from collections.abc import Mapping

from app.core.logging import get_logger
from app.db.enums import TASK_PENDING_STATUSES, TaskStatus
from app.orchestration.errors import TaskErrorKind, TaskServiceError

logger = get_logger("dlg.orchestration.state_machine")

INITIAL_TASK_STATUS = TaskStatus.TODO

# What an AI proposal stores, keyed by the status the AI asked for.
PROPOSAL_TRANSITIONS: Mapping[TaskStatus, TaskStatus] = {
    TaskStatus.DONE: TaskStatus.DONE_PENDING_ACCEPTANCE,
    TaskStatus.CANCELED: TaskStatus.CANCELED_PENDING_CONFIRMATION,
}

ACCEPTANCE_TRANSITIONS: Mapping[TaskStatus, TaskStatus] = {
    TaskStatus.DONE_PENDING_ACCEPTANCE: TaskStatus.DONE,
    TaskStatus.CANCELED_PENDING_CONFIRMATION: TaskStatus.CANCELED,
}

REJECTION_FALLBACK_STATUS = TaskStatus.TODO


def _to_task_status(value: int | None) -> TaskStatus | None:
    if value is None:
        return None
    try:
        return TaskStatus(value)
    except ValueError:
        return None


def is_pending(status_id: int) -> bool:
    return _to_task_status(status_id) in TASK_PENDING_STATUSES


def resolve_proposed_status(requested_status_id: int) -> TaskStatus:
    """
    Map the status an AI proposes onto the pending status that gets stored.

    Raises:
        TaskServiceError: ``INVALID_STATE`` unless Done (2) or Canceled (3) was requested.
    """
    requested = _to_task_status(requested_status_id)
    target = PROPOSAL_TRANSITIONS.get(requested) if requested is not None else None
    if target is None:
        allowed = " or ".join(
            f"'{status.name.title()}' ({status.value})" for status in PROPOSAL_TRANSITIONS
        )
        error_msg = (
            "Invalid status transition proposed. "
            f"AI can only propose {allowed}, got {requested_status_id}."
        )
        logger.warning("task.invalid_proposal", requested_status_id=requested_status_id)
        raise TaskServiceError(TaskErrorKind.INVALID_STATE, error_msg)
    return target


def resolve_accepted_status(current_status_id: int) -> TaskStatus:
    current = _to_task_status(current_status_id)
    target = ACCEPTANCE_TRANSITIONS.get(current) if current is not None else None
    if target is None:
        raise TaskServiceError(
            TaskErrorKind.INVALID_STATE,
            "This task is not awaiting acceptance.",
        )
    logger.debug(
        "task.acceptance_resolved",
        current_status_id=current_status_id,
        target_status_id=target.value,
    )
    return target


def ensure_rejectable(current_status_id: int) -> None:
    if not is_pending(current_status_id):
        raise TaskServiceError(
            TaskErrorKind.INVALID_STATE,
            "This task is not awaiting acceptance and its proposal cannot be rejected.",
        )


def resolve_rejected_status(status_before_proposal: int | None) -> TaskStatus:
    """Status a rejected proposal falls back to; never a pending one."""
    previous = _to_task_status(status_before_proposal)
    if previous is None or previous in TASK_PENDING_STATUSES:
        return REJECTION_FALLBACK_STATUS
    return previous
