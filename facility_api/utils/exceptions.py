from fastapi import HTTPException, status


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES: machine-readable constants the dashboard switches on
# ═══════════════════════════════════════════════════════════════════════════════
class ErrorCode:
    VALIDATION_ERROR        = "VALIDATION_ERROR"
    UNAUTHORIZED            = "UNAUTHORIZED"
    TOKEN_EXPIRED           = "TOKEN_EXPIRED"
    FORBIDDEN               = "FORBIDDEN"
    FORBIDDEN_ROLE          = "FORBIDDEN_ROLE"
    NOT_FOUND               = "NOT_FOUND"
    DUPLICATE_ENTRY         = "DUPLICATE_ENTRY"
    INVALID_TRANSITION      = "INVALID_TRANSITION"
    ALREADY_TERMINAL        = "ALREADY_TERMINAL"
    NOT_DRAFT               = "NOT_DRAFT"
    INVARIANT_VIOLATION     = "INVARIANT_VIOLATION"
    ACCOUNT_INACTIVE        = "ACCOUNT_INACTIVE"
    INTERNAL_SERVER_ERROR   = "INTERNAL_SERVER_ERROR"


# Lifecycle reason tags, shared with the transition validator
class RejectReason:
    INVALID_TRANSITION = "invalid-transition"
    FORBIDDEN_ROLE     = "forbidden-role"
    ALREADY_TERMINAL   = "already-terminal"


# ═══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════════════════════════
class AppException(HTTPException):
    """
    Base for every error the API reports on purpose.

    Subclasses pin `http_status`, `error_code` and a default message; raise
    sites only pass what differs (message text, per-field details).
    """
    http_status:     int = status.HTTP_400_BAD_REQUEST
    error_code:      str = ErrorCode.VALIDATION_ERROR
    default_message: str = "The request could not be processed"

    def __init__(self, message: str | None = None, details: list[dict] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(status_code=self.http_status, detail=self.message)


# ─── Identity & access ────────────────────────────────────────────────────────
class UnauthorizedException(AppException):
    http_status     = status.HTTP_401_UNAUTHORIZED
    error_code      = ErrorCode.UNAUTHORIZED
    default_message = "Authentication required"


class TokenExpiredException(AppException):
    http_status     = status.HTTP_401_UNAUTHORIZED
    error_code      = ErrorCode.TOKEN_EXPIRED
    default_message = "Access token has expired"


class ForbiddenException(AppException):
    http_status     = status.HTTP_403_FORBIDDEN
    error_code      = ErrorCode.FORBIDDEN
    default_message = "You do not have permission to perform this action"


class AccountInactiveException(AppException):
    http_status     = status.HTTP_403_FORBIDDEN
    error_code      = ErrorCode.ACCOUNT_INACTIVE
    default_message = "Your account has been deactivated. Contact admin."


class NotFoundException(AppException):
    http_status = status.HTTP_404_NOT_FOUND
    error_code  = ErrorCode.NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class RequestValidationException(AppException):
    """
    Field-level validation failure raised before any write is attempted.
    `details` is a list of {"field": ..., "message": ...} dicts.
    """
    http_status     = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code      = ErrorCode.VALIDATION_ERROR
    default_message = "Please check the highlighted fields."

    def __init__(self, details: list[dict], message: str | None = None):
        super().__init__(message, details)


# ─── Lifecycle ────────────────────────────────────────────────────────────────
class LifecycleException(AppException):
    """A maintenance-request operation rejected by the lifecycle rules."""
    reason: str = RejectReason.INVALID_TRANSITION


class InvalidTransitionException(LifecycleException):
    http_status = status.HTTP_409_CONFLICT
    error_code  = ErrorCode.INVALID_TRANSITION
    reason      = RejectReason.INVALID_TRANSITION

    def __init__(self, current: str | None, target: str):
        self.current = current
        self.target  = target
        super().__init__(f"Cannot move a request from '{current or 'new'}' to '{target}'")


class ForbiddenRoleException(LifecycleException):
    http_status     = status.HTTP_403_FORBIDDEN
    error_code      = ErrorCode.FORBIDDEN_ROLE
    reason          = RejectReason.FORBIDDEN_ROLE
    default_message = "Your role does not allow this change"


class AlreadyTerminalException(LifecycleException):
    http_status = status.HTTP_409_CONFLICT
    error_code  = ErrorCode.ALREADY_TERMINAL
    reason      = RejectReason.ALREADY_TERMINAL

    def __init__(self, current: str):
        self.current = current
        super().__init__(f"Request is already {current} and can no longer be changed")


class NotDraftException(AppException):
    http_status     = status.HTTP_400_BAD_REQUEST
    error_code      = ErrorCode.NOT_DRAFT
    default_message = "Only draft requests can be changed this way"


class InvariantViolationException(AppException):
    http_status     = status.HTTP_409_CONFLICT
    error_code      = ErrorCode.INVARIANT_VIOLATION
    default_message = "Change would leave the request in an inconsistent state"

    def __init__(self, violations: list[str]):
        super().__init__(details=[{"field": "record", "message": v} for v in violations])
