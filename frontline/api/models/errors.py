"""Error response models for consistent API error handling."""

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the error envelope."""

    INVALID_REQUEST = "INVALID_REQUEST"
    """Request validation failed (malformed JSON, missing fields, etc.)."""

    CALL_NOT_FOUND = "CALL_NOT_FOUND"
    """The call was never started or has already ended."""

    TURN_CANCELLED = "TURN_CANCELLED"
    """The turn was abandoned by an urgent interruption or hang-up."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred."""


class ErrorDetail(BaseModel):
    """Field-level detail for validation failures."""

    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    code: ErrorCode
    message: str
    details: list[ErrorDetail] | None = None
    call_id: str | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope.

    Example:
        {
            "error": {
                "code": "CALL_NOT_FOUND",
                "message": "Call abc123 not found"
            }
        }
    """

    error: ErrorBody
