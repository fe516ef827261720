"""API exception hierarchy.

Every API exception carries the HTTP status and error code used by the
global handler to build the error envelope.
"""

from frontline.api.models.errors import ErrorCode


class FrontlineAPIError(Exception):
    """Base exception for all API errors."""

    status_code: int = 500
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, call_id: str | None = None) -> None:
        self.message = message
        self.call_id = call_id
        super().__init__(message)


class CallNotFoundAPIError(FrontlineAPIError):
    status_code = 404
    error_code = ErrorCode.CALL_NOT_FOUND


class TurnCancelledAPIError(FrontlineAPIError):
    """The caller interrupted urgently or hung up while the turn was running."""

    status_code = 409
    error_code = ErrorCode.TURN_CANCELLED
