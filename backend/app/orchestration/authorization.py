"""Access decisions for the two kinds of callers.

A caller is either a human user or the AI agent bound to exactly one project
through that project's API key. Decisions are pure: callers load the project
from storage and pass it in, so ownership is always checked against stored
values rather than anything the client supplied.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from app.core.logging import get_logger
from app.db.models import Project
from app.orchestration.errors import TaskErrorKind, TaskServiceError

logger = get_logger("dlg.orchestration.authorization")

AI_PROTECTED_FIELDS: frozenset[str] = frozenset({"is_delegated", "status_id"})


@dataclass(frozen=True, slots=True)
class HumanActor:
    user_id: UUID

    @property
    def label(self) -> str:
        return f"user:{self.user_id}"


@dataclass(frozen=True, slots=True)
class AiActor:
    project_id: UUID

    @property
    def label(self) -> str:
        return f"ai:{self.project_id}"


Actor = HumanActor | AiActor


@dataclass(frozen=True, slots=True)
class Allow:
    pass


@dataclass(frozen=True, slots=True)
class Deny:
    reason: str


AccessDecision = Allow | Deny


def require_actor(actor: Actor | None) -> Actor:
    if actor is None:
        raise TaskServiceError(TaskErrorKind.AUTHENTICATION_REQUIRED)
    if not isinstance(actor, (HumanActor, AiActor)):
        raise TypeError(f"Unsupported actor type: {type(actor).__name__}")
    return actor


def authorize(
    actor: Actor,
    project: Project,
    *,
    patch_fields: Iterable[str] = (),
) -> AccessDecision:
    """
    Decide whether ``actor`` may act on a resource scoped to ``project``.

    Args:
        actor: The resolved caller.
        project: The stored project owning the resource.
        patch_fields: Field names of a direct update, checked for AI callers.

    Returns:
        AccessDecision: ``Allow()`` or ``Deny(reason)``.
    """
    if isinstance(actor, HumanActor):
        if project.user_id != actor.user_id:
            return Deny("Project is not owned by the caller.")
        return Allow()

    if isinstance(actor, AiActor):
        if project.id != actor.project_id:
            return Deny("Resource is outside the AI agent's project.")
        return check_patch_fields(actor, patch_fields)

    raise TypeError(f"Unsupported actor type: {type(actor).__name__}")


def check_patch_fields(actor: Actor, patch_fields: Iterable[str]) -> AccessDecision:
    """Field-level rule for direct updates; needs no stored state."""
    if isinstance(actor, HumanActor):
        return Allow()
    protected = AI_PROTECTED_FIELDS.intersection(patch_fields)
    if "is_delegated" in protected:
        return Deny("AI is not allowed to change the delegation status.")
    if "status_id" in protected:
        return Deny("AI is not allowed to change the task status directly.")
    return Allow()


def is_allowed(decision: AccessDecision) -> bool:
    return isinstance(decision, Allow)


def require_human(actor: Actor, *, action: str) -> HumanActor:
    if isinstance(actor, HumanActor):
        return actor
    logger.warning("authorization.denied", actor=actor.label, action=action, reason="human_only")
    raise TaskServiceError(
        TaskErrorKind.AUTHORIZATION_ERROR,
        f"Only a human user can {action}.",
    )


def require_ai(actor: Actor, *, action: str) -> AiActor:
    if isinstance(actor, AiActor):
        return actor
    logger.warning("authorization.denied", actor=actor.label, action=action, reason="ai_only")
    raise TaskServiceError(
        TaskErrorKind.AUTHORIZATION_ERROR,
        f"Only the AI agent can {action}.",
    )
