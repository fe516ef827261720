"""Request and response models for call endpoints."""

from uuid import UUID

from pydantic import BaseModel, Field

from frontline.conversation.edge_cases import InterruptionKind
from frontline.conversation.models import AuditEntry, TurnAction


class StartCallRequest(BaseModel):
    tenant_id: UUID = Field(..., description="Tenant whose rules and policy apply")


class StartCallResponse(BaseModel):
    call_id: str
    tenant_id: UUID
    turn_count: int


class TurnRequest(BaseModel):
    """One transcribed caller utterance. Empty text means the caller was silent."""

    utterance: str = Field(default="", max_length=4000)
    signals: dict[str, float] = Field(
        default_factory=dict,
        description="Upstream scores such as spam_score",
    )


class TurnResponse(BaseModel):
    call_id: str
    turn_number: int
    response_text: str
    action: TurnAction
    transfer_target: str | None = None
    side_effects: list[str] = Field(default_factory=list)
    short_circuited: bool = False
    audit: list[AuditEntry] | None = Field(
        default=None,
        description="Decision trail, included when requested with ?audit=true",
    )


class InterruptionRequest(BaseModel):
    fragment: str = Field(..., max_length=1000)


class InterruptionResponse(BaseModel):
    kind: InterruptionKind
    suppress_output: bool
    acknowledgment: str | None = None
    matched_keyword: str | None = None


class EndCallResponse(BaseModel):
    call_id: str
    ended: bool


class InvalidateResponse(BaseModel):
    tenant_id: UUID
    artifact: str
