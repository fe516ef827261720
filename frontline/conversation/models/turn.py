"""Per-turn accumulator passed through the orchestrator stages."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from frontline.triage.models import MatchResult


class TurnAction(str, Enum):
    """What the telephony layer does after speaking the response."""

    RESPOND = "respond"
    TRANSFER = "transfer"
    HANGUP = "hangup"


class AuditEntry(BaseModel):
    """One recorded decision made while processing a turn."""

    stage: str = Field(..., description="Pipeline stage that recorded the entry")
    event: str = Field(..., description="What happened, e.g. RULE_MATCHED, TRANSFER_BLOCKED")
    detail: dict[str, Any] = Field(default_factory=dict)


class TurnContext(BaseModel):
    """Mutable accumulator for one caller utterance.

    The identifying fields and inputs are fixed when the turn starts. All
    other fields are written by stages through the orchestrator's
    allow-listed merge.
    """

    model_config = ConfigDict(validate_assignment=True)

    call_id: str
    tenant_id: UUID
    turn_number: int = Field(..., ge=1)
    raw_input: str
    signals: dict[str, float] = Field(
        default_factory=dict,
        description="Auxiliary numeric signals from upstream, e.g. spam_score",
    )

    cleaned_input: str | None = None
    extracted_keywords: list[str] = Field(default_factory=list)
    intent: str | None = None
    intent_confidence: float | None = None
    entities: dict[str, str] = Field(default_factory=dict)
    classification: MatchResult | None = None
    proposed_response: str | None = None
    final_response: str | None = None
    final_action: TurnAction | None = None
    transfer_target: str | None = None
    short_circuit: bool = False
    side_effects: list[str] = Field(default_factory=list)
    audit: list[AuditEntry] = Field(default_factory=list)

    @property
    def effective_input(self) -> str:
        """Best available version of what the caller said."""
        if self.cleaned_input is not None:
            return self.cleaned_input
        return self.raw_input

    @property
    def is_first_turn(self) -> bool:
        return self.turn_number == 1

    @property
    def stages_fired(self) -> list[str]:
        seen: list[str] = []
        for entry in self.audit:
            if entry.stage not in seen:
                seen.append(entry.stage)
        return seen
