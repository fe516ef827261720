"""API request and response models."""

from frontline.api.models.calls import (
    EndCallResponse,
    InterruptionRequest,
    InterruptionResponse,
    InvalidateResponse,
    StartCallRequest,
    StartCallResponse,
    TurnRequest,
    TurnResponse,
)
from frontline.api.models.errors import ErrorBody, ErrorCode, ErrorDetail, ErrorResponse
from frontline.api.models.health import ComponentHealth, HealthResponse

__all__ = [
    "ComponentHealth",
    "EndCallResponse",
    "ErrorBody",
    "ErrorCode",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "InterruptionRequest",
    "InterruptionResponse",
    "InvalidateResponse",
    "StartCallRequest",
    "StartCallResponse",
    "TurnRequest",
    "TurnResponse",
]
