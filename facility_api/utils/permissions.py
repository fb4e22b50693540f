"""
Actor context and the role → capability table.

Every lifecycle operation receives an explicit `Actor`. What the actor may do
is looked up here once, instead of comparing role strings at each call site.
"""
import enum
from dataclasses import dataclass
from typing import Mapping, Optional

from facility_api.models.user import RoleName, User


class Capability(str, enum.Enum):
    REQUEST   = "request"     # create / draft / submit own requests
    SUPERVISE = "supervise"   # assign technicians, cancel
    TECHNICIAN = "technician" # eligible to be assigned work


class WorkflowRole(str, enum.Enum):
    """The part an actor plays with respect to one particular request."""
    REQUESTER  = "requester"
    SUPERVISOR = "supervisor"
    TECHNICIAN = "technician"


ROLE_CAPABILITIES: dict[RoleName, frozenset[Capability]] = {
    RoleName.ADMIN:      frozenset({Capability.REQUEST, Capability.SUPERVISE}),
    RoleName.MANAGER:    frozenset({Capability.REQUEST, Capability.SUPERVISE, Capability.TECHNICIAN}),
    RoleName.SUPERVISOR: frozenset({Capability.REQUEST, Capability.SUPERVISE, Capability.TECHNICIAN}),
    RoleName.STAFF:      frozenset({Capability.REQUEST, Capability.TECHNICIAN}),
}


def capabilities_for(role: RoleName) -> frozenset[Capability]:
    return ROLE_CAPABILITIES.get(RoleName(role), frozenset())


def technician_roles() -> list[RoleName]:
    return [r for r, caps in ROLE_CAPABILITIES.items() if Capability.TECHNICIAN in caps]


@dataclass(frozen=True)
class Actor:
    id:   int
    role: RoleName
    name: str = ""

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=RoleName(user.role), name=user.name)

    @property
    def capabilities(self) -> frozenset[Capability]:
        return capabilities_for(self.role)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def roles_for(self, request: Optional[Mapping] = None) -> frozenset[WorkflowRole]:
        """
        Workflow roles this actor holds on `request` (a record snapshot).
        `None` means a request that does not exist yet.
        """
        roles = set()
        if self.can(Capability.REQUEST):
            if request is None or request.get("requestedBy") == self.id:
                roles.add(WorkflowRole.REQUESTER)
        if self.can(Capability.SUPERVISE):
            roles.add(WorkflowRole.SUPERVISOR)
        if request is not None and request.get("assignedTo") is not None \
                and request.get("assignedTo") == self.id:
            roles.add(WorkflowRole.TECHNICIAN)
        return frozenset(roles)
