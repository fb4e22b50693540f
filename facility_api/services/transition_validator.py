"""
Maintenance-request state machine.

`check_transition` is a pure lookup: given the current status, the workflow
role(s) of the actor and the requested status it answers allow / deny with a
reason tag. It never touches the database and knows nothing about the record
beyond its status.
"""
import enum
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union

from facility_api.models.maintenance_request import MaintenanceStatus, TERMINAL_STATUSES
from facility_api.utils.exceptions import (
    RejectReason, InvalidTransitionException, ForbiddenRoleException,
)
from facility_api.utils.permissions import WorkflowRole

S = MaintenanceStatus
R = WorkflowRole


class Trigger(str, enum.Enum):
    DIRECT     = "direct"      # the user picked the target status
    ASSIGNMENT = "assignment"  # side effect of changing the assignee


A = Trigger.ASSIGNMENT
D = Trigger.DIRECT

# (from, to, trigger) → roles that may take the edge. `None` is a record that does not exist yet.
# The same (from, to) pair may appear under both triggers with different roles.
TRANSITIONS: dict[tuple[Optional[MaintenanceStatus], MaintenanceStatus, Trigger], frozenset] = {
    (None,          S.DRAFT,       D): frozenset({R.REQUESTER}),
    (S.DRAFT,       S.DRAFT,       D): frozenset({R.REQUESTER}),
    (None,          S.PENDING,     D): frozenset({R.REQUESTER}),
    (S.DRAFT,       S.PENDING,     D): frozenset({R.REQUESTER}),

    (S.PENDING,     S.APPROVED,    A): frozenset({R.SUPERVISOR}),
    (S.PENDING,     S.PENDING,     A): frozenset({R.SUPERVISOR}),
    (S.APPROVED,    S.APPROVED,    A): frozenset({R.SUPERVISOR}),
    (S.APPROVED,    S.PENDING,     A): frozenset({R.SUPERVISOR}),
    (S.IN_PROGRESS, S.IN_PROGRESS, A): frozenset({R.SUPERVISOR}),
    (S.IN_PROGRESS, S.PENDING,     A): frozenset({R.SUPERVISOR}),

    (S.APPROVED,    S.IN_PROGRESS, D): frozenset({R.TECHNICIAN}),
    (S.APPROVED,    S.COMPLETED,   D): frozenset({R.TECHNICIAN}),
    (S.IN_PROGRESS, S.COMPLETED,   D): frozenset({R.TECHNICIAN}),
    (S.IN_PROGRESS, S.IN_PROGRESS, D): frozenset({R.TECHNICIAN}),   # notes only

    (S.PENDING,     S.CANCELLED,   D): frozenset({R.SUPERVISOR}),
    (S.APPROVED,    S.CANCELLED,   D): frozenset({R.SUPERVISOR}),
}


@dataclass(frozen=True)
class TransitionDecision:
    allowed: bool
    reason:  Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = TransitionDecision(True)


def _as_status(value) -> Optional[MaintenanceStatus]:
    return None if value is None else MaintenanceStatus(value)


def _as_roles(roles: Union[WorkflowRole, Iterable[WorkflowRole], None]) -> frozenset:
    if roles is None:
        return frozenset()
    if isinstance(roles, WorkflowRole):
        return frozenset({roles})
    return frozenset(roles)


def check_transition(
    current,
    roles: Union[WorkflowRole, Iterable[WorkflowRole], None],
    target,
    trigger: Trigger = Trigger.DIRECT,
) -> TransitionDecision:
    """Decide whether an actor holding `roles` may move `current` → `target`."""
    current = _as_status(current)
    target  = MaintenanceStatus(target)

    if current in TERMINAL_STATUSES:
        return TransitionDecision(False, RejectReason.INVALID_TRANSITION)

    permitted = TRANSITIONS.get((current, target, Trigger(trigger)))
    if permitted is None:
        return TransitionDecision(False, RejectReason.INVALID_TRANSITION)
    if not (permitted & _as_roles(roles)):
        return TransitionDecision(False, RejectReason.FORBIDDEN_ROLE)
    return ALLOW


def require_transition(current, roles, target, trigger: Trigger = Trigger.DIRECT) -> None:
    """Like check_transition, but raises the matching lifecycle exception on deny."""
    decision = check_transition(current, roles, target, trigger)
    if decision:
        return
    if decision.reason == RejectReason.FORBIDDEN_ROLE:
        raise ForbiddenRoleException(
            f"Your role does not allow moving a request to '{MaintenanceStatus(target).value}'"
        )
    raise InvalidTransitionException(
        _as_status(current).value if current is not None else None,
        MaintenanceStatus(target).value,
    )


def allowed_targets(current, roles, trigger: Trigger = Trigger.DIRECT) -> list[MaintenanceStatus]:
    """Statuses the actor may choose from `current`, excluding the current one."""
    return [
        target for target in MaintenanceStatus
        if target != _as_status(current) and check_transition(current, roles, target, trigger)
    ]


def invariant_violations(state: Mapping) -> list[str]:
    """Return the record invariants `state` breaks (empty when consistent)."""
    violations = []
    status = _as_status(state.get("status"))

    if (status == S.DRAFT) != bool(state.get("isDraft")):
        violations.append("status is 'draft' if and only if isDraft is true")
    if state.get("assignedTo") is not None and status in (S.DRAFT, S.PENDING):
        violations.append("assignedTo must be empty until the request is approved")
    if (state.get("completedAt") is not None) != (status == S.COMPLETED):
        violations.append("completedAt is set if and only if the request is completed")
    return violations
