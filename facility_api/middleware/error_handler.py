import logging
import traceback
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from facility_api.utils.exceptions import AppException, LifecycleException, ErrorCode

logger = logging.getLogger(__name__)


def _error_body(code: str, message: str, details: list | None = None, **extra) -> dict:
    return {
        "success": False,
        "message": message,
        "error": {"code": code, "details": details, "field": None, **extra},
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Domain errors. Lifecycle rejections also carry the reason tag
    (invalid-transition / forbidden-role / already-terminal).
    """
    extra = {}
    if isinstance(exc, LifecycleException):
        extra["reason"] = exc.reason
        logger.warning(f"{request.method} {request.url.path} rejected ({exc.reason}): {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.details, **extra),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body / query validation errors (422), flattened to {field, message} pairs."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body") or "unknown",
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(ErrorCode.VALIDATION_ERROR, "Please check the highlighted fields.", details),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # e.g. an asset or user row removed while a request still points at it
    logger.warning(f"IntegrityError on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_error_body(ErrorCode.DUPLICATE_ENTRY, "The change conflicts with existing data."),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Store failures and anything else unexpected: log the traceback, answer 500."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(ErrorCode.INTERNAL_SERVER_ERROR, "Something went wrong. Your change was not saved."),
    )
