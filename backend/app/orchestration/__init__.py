from app.orchestration.authorization import (
    AccessDecision,
    Actor,
    AiActor,
    Allow,
    Deny,
    HumanActor,
    authorize,
    check_patch_fields,
    is_allowed,
    require_actor,
    require_ai,
    require_human,
)
from app.orchestration.errors import TaskErrorKind, TaskServiceError
from app.orchestration.positions import next_position
from app.orchestration.state_machine import (
    ACCEPTANCE_TRANSITIONS,
    PROPOSAL_TRANSITIONS,
    ensure_rejectable,
    resolve_accepted_status,
    resolve_proposed_status,
    resolve_rejected_status,
)

__all__ = [
    "ACCEPTANCE_TRANSITIONS",
    "AccessDecision",
    "Actor",
    "AiActor",
    "Allow",
    "Deny",
    "HumanActor",
    "PROPOSAL_TRANSITIONS",
    "TaskErrorKind",
    "TaskServiceError",
    "authorize",
    "check_patch_fields",
    "ensure_rejectable",
    "is_allowed",
    "next_position",
    "require_actor",
    "require_ai",
    "require_human",
    "resolve_accepted_status",
    "resolve_proposed_status",
    "resolve_rejected_status",
]
