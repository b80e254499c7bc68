from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlmodel import Session
from starlette.requests import Request

from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.repositories import ProjectRepository
from app.db.session import get_session
from app.orchestration.authorization import Actor, AiActor, HumanActor
from app.orchestration.errors import TaskErrorKind, TaskServiceError
from app.security import mask_api_key

logger = get_logger("dlg.core.auth")

DbSession = Annotated[Session, Depends(get_session)]


def _extract_api_key(request: Request) -> str | None:
    header_key = request.headers.get("X-API-Key")
    if header_key is not None:
        normalized = header_key.strip()
        if normalized:
            return normalized

    authorization = request.headers.get("Authorization")
    if authorization is None:
        return None
    prefix = "bearer "
    lowered = authorization.lower()
    if not lowered.startswith(prefix):
        return None
    token = authorization[len(prefix) :].strip()
    return token if token else None


def _extract_user_id(request: Request, header_name: str) -> str | None:
    raw_value = request.headers.get(header_name)
    if raw_value is None:
        return None
    normalized = raw_value.strip()
    return normalized or None


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


def resolve_actor(request: Request, session: DbSession) -> Actor | None:
    """
    Turn request credentials into an actor.

    An API key wins over a user header: a valid key identifies the AI agent
    of its project, an unknown or malformed key is rejected outright. Without
    a key the configured user header identifies a human. With neither, the
    result is ``None`` and each operation decides how to reject it.
    """
    api_key = _extract_api_key(request)
    if api_key is not None:
        parsed_key = _parse_uuid(api_key)
        project = (
            ProjectRepository(session).get_by_api_key(parsed_key)
            if parsed_key is not None
            else None
        )
        if project is None:
            logger.warning("auth.api_key_rejected", api_key=mask_api_key(api_key))
            raise TaskServiceError(
                TaskErrorKind.AUTHENTICATION_REQUIRED,
                "Invalid API key.",
            )
        return AiActor(project_id=project.id)

    header_name = get_settings().user_id_header
    raw_user_id = _extract_user_id(request, header_name)
    if raw_user_id is None:
        return None
    user_id = _parse_uuid(raw_user_id)
    if user_id is None:
        raise TaskServiceError(
            TaskErrorKind.AUTHENTICATION_REQUIRED,
            f"Malformed {header_name} header.",
        )
    return HumanActor(user_id=user_id)


CurrentActor = Annotated[Actor | None, Depends(resolve_actor)]
