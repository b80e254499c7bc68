from __future__ import annotations

from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import get_logger
from app.orchestration.errors import TaskErrorKind, TaskServiceError

logger = get_logger("dlg.orchestration.positions")

FIRST_POSITION = 1


class PositionSource(Protocol):
    def max_position(self, *, project_id: UUID, parent_id: UUID | None) -> int | None: ...


def next_position(source: PositionSource, *, project_id: UUID, parent_id: UUID | None) -> int:
    """
    Compute the next ordering slot in the sibling group ``(project_id, parent_id)``.

    ``parent_id=None`` is the project's top-level group, disjoint from every
    child group. An empty group yields ``FIRST_POSITION``.

    This read is not serialized against concurrent inserts; the storage
    unique index on the sibling scope rejects a duplicate and the caller
    retries with a fresh value.
    """
    try:
        current_max = source.max_position(project_id=project_id, parent_id=parent_id)
    except SQLAlchemyError as exc:
        logger.exception(
            "task.position_lookup_failed",
            project_id=str(project_id),
            parent_id=str(parent_id) if parent_id is not None else None,
        )
        raise TaskServiceError(
            TaskErrorKind.PERSISTENCE_ERROR,
            "Could not determine task position.",
        ) from exc
    if current_max is None:
        return FIRST_POSITION
    return current_max + 1
