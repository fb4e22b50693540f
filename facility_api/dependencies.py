from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from facility_api.database import get_db
from facility_api.models.user import User
from facility_api.utils.permissions import Actor, Capability
from facility_api.utils.security import verify_access_token
from facility_api.utils.exceptions import (
    UnauthorizedException,
    ForbiddenException,
    AccountInactiveException,
)

# Tokens come from the identity provider; missing header is reported by us, not by HTTPBearer
bearer_scheme = HTTPBearer(auto_error=False)


# ─── Acting identity ──────────────────────────────────────────────────────────
def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """
    Resolve the bearer token to the user behind it and hand the lifecycle an
    `Actor`. 401 for a missing / bad / expired token or an unknown user,
    403 for a deactivated account.
    """
    if not credentials:
        raise UnauthorizedException("No authentication token provided")

    claims = verify_access_token(credentials.credentials)
    subject = claims.get("sub")
    if subject is None or not str(subject).isdigit():
        raise UnauthorizedException("Invalid token payload")

    user = db.get(User, int(subject))
    if user is None:
        raise UnauthorizedException("Token does not belong to a known user")
    if not user.isActive:
        raise AccountInactiveException()

    return Actor.from_user(user)


# ─── Capability guards ────────────────────────────────────────────────────────
def require_capability(capability: Capability):
    """
    Dependency factory for routes that need one capability up front, e.g.

        @router.get("/technicians")
        def route(actor: Actor = Depends(require_capability(Capability.SUPERVISE))):
            ...

    Per-request rules (creator, assigned technician) are checked by the
    lifecycle services instead.
    """
    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.can(capability):
            raise ForbiddenException(f"This action requires the '{capability.value}' capability")
        return actor
    return dependency


get_supervisor = require_capability(Capability.SUPERVISE)
