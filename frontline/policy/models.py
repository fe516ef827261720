"""Policy documents, compiled policy artifacts and evaluation results."""

from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from frontline.conversation.models import TurnAction
from frontline.models import TenantScopedModel, utc_now
from frontline.policy.patterns import PatternSpec

TRANSFER_ACTION_PREFIX = "TRANSFER_"


class EdgeCaseActionKind(str, Enum):
    """What a matched edge case does to the turn.

    Every kind except FLAG_ONLY ends the policy chain.
    """

    OVERRIDE_RESPONSE = "override_response"
    FORCE_TRANSFER = "force_transfer"
    POLITE_HANGUP = "polite_hangup"
    FLAG_ONLY = "flag_only"


class GuardrailFlag(str, Enum):
    """Content rewrites applied to outgoing text."""

    NO_PRICES = "NO_PRICES"
    NO_PHONE_NUMBERS = "NO_PHONE_NUMBERS"
    NO_URLS = "NO_URLS"
    MAX_ONE_APOLOGY = "MAX_ONE_APOLOGY"
    NO_MEDICAL_ADVICE = "NO_MEDICAL_ADVICE"
    NO_LEGAL_ADVICE = "NO_LEGAL_ADVICE"


class BehaviorFlag(str, Enum):
    """Stylistic transforms, applied in declaration order."""

    ACK_OK = "ACK_OK"
    USE_COMPANY_NAME = "USE_COMPANY_NAME"
    CONFIRM_ENTITIES = "CONFIRM_ENTITIES"
    POLITE_PROFESSIONAL = "POLITE_PROFESSIONAL"


class PolicyStage(str, Enum):
    """Stages of the precedence chain, plus the failure marker."""

    EDGE_CASE = "edge_case"
    TRANSFER = "transfer"
    GUARDRAILS = "guardrails"
    BEHAVIOR = "behavior"
    FAILSAFE = "failsafe"


# Authoring documents


class EdgeCaseMatch(BaseModel):
    """Match criteria of an edge case. Any one satisfied criterion matches."""

    keywords_any: list[str] = Field(default_factory=list)
    keywords_all: list[str] = Field(default_factory=list)
    regex_patterns: list[str] = Field(default_factory=list)
    min_spam_score: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Only match when the turn's spam_score signal reaches this value",
    )


class EdgeCaseAction(BaseModel):
    kind: EdgeCaseActionKind
    response: str | None = Field(default=None, description="Spoken text for override_response")
    transfer_target: str | None = None
    transfer_message: str | None = None
    hangup_message: str | None = None


class EdgeCaseSideEffects(BaseModel):
    """Asynchronous follow-ups fired when the edge case matches."""

    auto_tags: list[str] = Field(default_factory=list)
    auto_blacklist: bool = False
    notify_contacts: list[str] = Field(default_factory=list)
    log_severity: Literal["info", "warning", "error"] = "info"


class EdgeCaseDefinition(BaseModel):
    name: str = Field(..., min_length=1)
    enabled: bool = True
    priority: int | None = Field(default=None, description="Lower runs first")
    match: EdgeCaseMatch = Field(default_factory=EdgeCaseMatch)
    action: EdgeCaseAction
    side_effects: EdgeCaseSideEffects = Field(default_factory=EdgeCaseSideEffects)


class TransferRuleDefinition(BaseModel):
    intent_tag: str = Field(..., min_length=1, description="e.g. billing, emergency")
    enabled: bool = True
    priority: int | None = None
    patterns: list[str] = Field(
        default_factory=list,
        description="Trigger phrases; empty means the built-in phrases for the intent",
    )
    regex_patterns: list[str] = Field(default_factory=list)
    target: str | None = Field(default=None, description="Transfer destination")
    message: str | None = None
    after_hours_only: bool = False

    @field_validator("intent_tag")
    @classmethod
    def _lower_tag(cls, value: str) -> str:
        return value.strip().lower()


class PolicyDocument(TenantScopedModel):
    """A tenant's policy as authored."""

    version: int = Field(default=1, ge=1)
    edge_cases: list[EdgeCaseDefinition] = Field(default_factory=list)
    transfer_rules: list[TransferRuleDefinition] = Field(default_factory=list)
    allowed_actions: list[str] = Field(default_factory=list)
    guardrails: list[GuardrailFlag] = Field(default_factory=list)
    behavior: list[BehaviorFlag] = Field(default_factory=list)
    variables: dict[str, str] = Field(
        default_factory=dict,
        description="Company variables; prices and phone numbers in values are approved",
    )
    approved_prices: list[str] = Field(default_factory=list)
    approved_phones: list[str] = Field(default_factory=list)
    company_name: str | None = None
    handoff_message: str | None = None


# Compiled artifact


class CompiledEdgeCase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    priority: int
    patterns: tuple[PatternSpec, ...] = ()
    min_spam_score: float | None = None
    action: EdgeCaseAction
    side_effects: EdgeCaseSideEffects


class CompiledTransferRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    intent_tag: str
    priority: int
    patterns: tuple[PatternSpec, ...]
    target: str
    message: str | None = None
    after_hours_only: bool = False

    @property
    def action_tag(self) -> str:
        return TRANSFER_ACTION_PREFIX + self.intent_tag.upper()


class CompiledPolicy(BaseModel):
    """Serialized policy artifact as stored in the cache.

    Patterns are plain data here and are turned into matchers once per load.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: UUID
    version: int
    checksum: str = ""
    edge_cases: tuple[CompiledEdgeCase, ...] = ()
    transfer_rules: tuple[CompiledTransferRule, ...] = ()
    allowed_actions: tuple[str, ...] = ()
    guardrails: tuple[GuardrailFlag, ...] = ()
    behavior: tuple[BehaviorFlag, ...] = ()
    approved_prices: tuple[str, ...] = ()
    approved_phones: tuple[str, ...] = ()
    company_name: str | None = None
    handoff_message: str
    compiled_at: datetime = Field(default_factory=utc_now)
    warnings: tuple[str, ...] = ()


# Evaluation results


class SideEffect(BaseModel):
    """A follow-up action requested by a matched edge case."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tag", "blacklist", "notify"]
    edge_case: str
    value: str | None = None

    @property
    def label(self) -> str:
        return f"{self.kind}:{self.value}" if self.value else self.kind


class AppliedStage(BaseModel):
    """Audit record of one firing inside the precedence chain."""

    stage: PolicyStage
    name: str = Field(..., description="Edge case name, transfer tag or flag that fired")
    terminal: bool = False
    detail: str | None = None


class PolicyResult(BaseModel):
    response: str
    action: TurnAction = TurnAction.RESPOND
    applied_stages: list[AppliedStage] = Field(default_factory=list)
    elapsed_ms: float = 0.0
    short_circuited: bool = False
    transfer_target: str | None = None
    guardrails_fired: list[GuardrailFlag] = Field(default_factory=list)
    side_effects: list[SideEffect] = Field(default_factory=list)
    failed: bool = False
