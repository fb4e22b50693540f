"""
Assignment engine: couples technician assignment to request status.

Every operation takes a record snapshot (plain dict, see
`request_store.snapshot`) and returns the complete next-state snapshot. The
input is never mutated and nothing is persisted here; a rejected operation
raises before any state is produced.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional

from facility_api.models.maintenance_request import MaintenanceStatus, TERMINAL_STATUSES
from facility_api.services.transition_validator import Trigger, require_transition
from facility_api.utils.exceptions import AlreadyTerminalException, ForbiddenRoleException
from facility_api.utils.permissions import Actor, WorkflowRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Technician:
    id:   int
    name: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _reject_terminal(state: Mapping) -> MaintenanceStatus:
    current = MaintenanceStatus(state["status"])
    if current in TERMINAL_STATUSES:
        logger.warning(f"Rejected change on request #{state.get('id')}: already {current.value}")
        raise AlreadyTerminalException(current.value)
    return current


def assign_technician(state: Mapping, technician: Optional[Technician], actor: Actor) -> dict:
    """
    Set or clear the assignee of a request.

    - technician None  → assignee cleared, status forced back to pending
    - pending          → assignee set, status approved
    - approved/in_progress → assignee replaced, status unchanged
    Re-applying the current assignment yields an identical state.
    """
    current = _reject_terminal(state)

    if technician is None:
        target = MaintenanceStatus.PENDING
    elif current == MaintenanceStatus.PENDING:
        target = MaintenanceStatus.APPROVED
    else:
        target = current

    require_transition(current, actor.roles_for(state), target, Trigger.ASSIGNMENT)

    nxt = dict(state)
    nxt["status"] = target
    nxt["assignedTo"] = technician.id if technician else None
    nxt["assignedToName"] = technician.name if technician else None
    return nxt


def advance_status(
    state: Mapping,
    target: MaintenanceStatus,
    actor: Actor,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Move a request forward as its assigned technician
    (approved → in_progress → completed, or approved → completed).
    Notes are appended to any existing notes. The assignee is never touched.
    """
    current = _reject_terminal(state)
    target = MaintenanceStatus(target)
    roles = actor.roles_for(state)

    if WorkflowRole.TECHNICIAN not in roles:
        raise ForbiddenRoleException("Only the assigned technician can update the work status")
    require_transition(current, roles, target, Trigger.DIRECT)

    nxt = dict(state)
    nxt["status"] = target
    if notes and notes.strip():
        existing = state.get("notes")
        nxt["notes"] = f"{existing}\n{notes.strip()}" if existing else notes.strip()
    if target == MaintenanceStatus.COMPLETED and state.get("completedAt") is None:
        nxt["completedAt"] = now or _now()
    return nxt


def cancel_request(state: Mapping, actor: Actor) -> dict:
    """Cancel a pending or approved request (supervisor / manager)."""
    current = _reject_terminal(state)
    require_transition(current, actor.roles_for(state), MaintenanceStatus.CANCELLED, Trigger.DIRECT)

    nxt = dict(state)
    nxt["status"] = MaintenanceStatus.CANCELLED
    return nxt
