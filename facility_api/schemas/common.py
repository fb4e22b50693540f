from pydantic import BaseModel
from typing import Any


class ErrorDetail(BaseModel):
    field:   str
    message: str


class ErrorBody(BaseModel):
    code:    str
    details: list[ErrorDetail] | None = None
    field:   str | None = None
    # lifecycle rejections only: invalid-transition | forbidden-role | already-terminal
    reason:  str | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error:   ErrorBody


# Documented error shapes for routes that run lifecycle rules
LIFECYCLE_ERROR_RESPONSES = {
    403: {"model": ErrorResponse, "description": "Forbidden role"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Invalid transition or already terminal"},
    422: {"model": ErrorResponse, "description": "Missing or invalid fields"},
}


# ─── Envelopes ────────────────────────────────────────────────────────────────
def success_response(message: str, data: Any = None) -> dict:
    return {"success": True, "message": message, "data": data}


def paginated_response(message: str, data: list, total: int, page: int, limit: int) -> dict:
    """List envelope; `page` is 1-based and items come newest first."""
    pages = -(-total // limit) if limit > 0 else 0
    return {
        **success_response(message, data),
        "meta": {
            "page":       page,
            "limit":      limit,
            "total":      total,
            "totalPages": pages,
            "hasNext":    page < pages,
            "hasPrev":    page > 1,
        },
    }
