"""
Request workflow graph and the pure transition decision.

The graph is a fixed table `status -> allowed targets`. Every non-terminal
status may move to any other status except back to `pending`; terminal
statuses have no outgoing edges. An optional `target -> roles` gate restricts
who may set the manager/CEO outcomes. The gate is off unless the caller asks
for it, matching the open policy of the running system.
"""
from __future__ import annotations

from dataclasses import dataclass

from hr_requests.core.errors import InvalidTransitionError, NoOpTransitionError, ValidationError
from hr_requests.domain.audit import HistoryEntry, history_entry, status_changed_action


PENDING = "pending"
UNDER_REVIEW = "under-review"
APPROVED_MANAGER = "approved-manager"
REJECTED_MANAGER = "rejected-manager"
APPROVED_CEO = "approved-ceo"
REJECTED_CEO = "rejected-ceo"

STATUSES: tuple[str, ...] = (
    PENDING,
    UNDER_REVIEW,
    APPROVED_MANAGER,
    REJECTED_MANAGER,
    APPROVED_CEO,
    REJECTED_CEO,
)
INITIAL_STATUS = PENDING
OPEN_STATUSES = frozenset({PENDING, UNDER_REVIEW})
TERMINAL_STATUSES = frozenset({APPROVED_MANAGER, REJECTED_MANAGER, APPROVED_CEO, REJECTED_CEO})

TRANSITIONS: dict[str, frozenset[str]] = {
    status: (
        frozenset()
        if status in TERMINAL_STATUSES
        else frozenset(s for s in STATUSES if s not in {status, INITIAL_STATUS})
    )
    for status in STATUSES
}

ROLE_GATES: dict[str, frozenset[str]] = {
    APPROVED_MANAGER: frozenset({"manager", "admin"}),
    REJECTED_MANAGER: frozenset({"manager", "admin"}),
    APPROVED_CEO: frozenset({"ceo", "admin"}),
    REJECTED_CEO: frozenset({"ceo", "admin"}),
}

BUCKETS: dict[str, frozenset[str]] = {
    "open": OPEN_STATUSES,
    "completed": TERMINAL_STATUSES,
}


@dataclass(frozen=True)
class TransitionDecision:
    current: str
    target: str
    history_entry: HistoryEntry


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def normalize_status(value: str | None) -> str:
    """Validate a caller-supplied status name."""
    candidate = (value or "").strip().lower()
    if candidate not in STATUSES:
        raise ValidationError({"status": f"must be one of {', '.join(STATUSES)}"})
    return candidate


def decide_transition(
    current: str,
    target: str,
    *,
    actor_name: str,
    actor_role: str,
    enforce_role_gates: bool = False,
) -> TransitionDecision:
    """
    Decide whether `current -> target` is legal for the actor.

    Raises NoOpTransitionError when the request is already in `target`; this
    check runs before the terminal check so a retried, already-committed
    transition is recognised instead of failing. Raises
    InvalidTransitionError for terminal sources, unknown edges and gated
    targets. Never touches storage.
    """
    target = normalize_status(target)

    if target == current:
        raise NoOpTransitionError(status=current)

    if is_terminal(current):
        raise InvalidTransitionError(current=current, attempted=target, reason="request is already finalized")

    if target not in TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current=current, attempted=target)

    if enforce_role_gates:
        allowed_roles = ROLE_GATES.get(target)
        if allowed_roles is not None and actor_role not in allowed_roles:
            raise InvalidTransitionError(
                current=current,
                attempted=target,
                reason=f"role '{actor_role}' may not set this status",
            )

    return TransitionDecision(
        current=current,
        target=target,
        history_entry=history_entry(status_changed_action(target), actor_name),
    )
