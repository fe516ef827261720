"""Per-call session state."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from frontline.models import utc_now


class SessionState(BaseModel):
    """State that survives across the turns of one call.

    Owned by exactly one call. Only the edge-case state machine and the turn
    orchestrator mutate it. Discarded when the call ends.
    """

    model_config = ConfigDict(validate_assignment=True)

    call_id: str = Field(..., min_length=1, description="Telephony call identifier")
    tenant_id: UUID = Field(..., description="Tenant the call belongs to")
    turn_count: int = Field(default=0, ge=0, description="Completed turns")
    consecutive_unknown: int = Field(
        default=0,
        ge=0,
        description="Consecutive turns that could not be classified",
    )
    consecutive_silence: int = Field(default=0, ge=0, description="Consecutive empty turns")
    last_triage_decision: str | None = Field(default=None, description="action:rule_id of the last match")
    collected_entities: dict[str, str] = Field(
        default_factory=dict,
        description="Caller details gathered so far (name, phone, address)",
    )
    queued_interruptions: list[str] = Field(
        default_factory=list,
        description="Non-urgent barge-in fragments waiting for the next turn",
    )
    started_at: datetime = Field(default_factory=utc_now)
    last_activity_at: datetime = Field(default_factory=utc_now)

    @property
    def next_turn_number(self) -> int:
        return self.turn_count + 1
