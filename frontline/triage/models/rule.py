"""Rule sources and the normalized Rule they compile into.

Each source has its own shape; all of them normalize into ``Rule`` so the
matcher never branches on where a rule came from.
"""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from frontline.models import TenantScopedModel, utc_now
from frontline.triage.models.enums import RuleSource


def _clean_keywords(values: list[str]) -> list[str]:
    cleaned = []
    for value in values:
        value = " ".join(value.lower().split())
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


class Rule(BaseModel):
    """One compiled decision unit.

    Immutable once compiled; a rule set is shared across concurrent turns.
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str
    keywords: tuple[str, ...] = ()
    exclude_keywords: tuple[str, ...] = ()
    service_type: str | None = None
    action: str
    priority: int
    source: RuleSource
    reason: str = ""
    updated_at: datetime
    category_slug: str | None = None
    is_fallback: bool = False

    def sort_key(self) -> tuple[int, int, float]:
        """Ascending sort key for (priority desc, source rank desc, updated_at desc)."""
        return (-self.priority, -self.source.rank, -self.updated_at.timestamp())


class _KeywordRuleFields(BaseModel):
    keywords: list[str] = Field(..., description="All must be present for a match")
    exclude_keywords: list[str] = Field(
        default_factory=list,
        description="Any one of these vetoes a match",
    )
    service_type: str | None = Field(default=None, description="Service classification")
    action: str = Field(..., min_length=1, description="Action tag")
    priority: int = Field(default=50, ge=1, le=100)
    reason: str = ""

    @field_validator("keywords", "exclude_keywords")
    @classmethod
    def _normalize(cls, values: list[str]) -> list[str]:
        return _clean_keywords(values)

    @field_validator("action")
    @classmethod
    def _upper_action(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def _require_keywords(self) -> "_KeywordRuleFields":
        if not self.keywords:
            raise ValueError("Only the catch-all rule may have no keywords")
        return self


class ManualRule(TenantScopedModel, _KeywordRuleFields):
    """Administrator-authored rule."""

    rule_id: str = Field(default_factory=lambda: str(uuid4()))
    is_active: bool = True

    def to_rule(self) -> Rule:
        return Rule(
            rule_id=self.rule_id,
            keywords=tuple(self.keywords),
            exclude_keywords=tuple(self.exclude_keywords),
            service_type=self.service_type,
            action=self.action,
            priority=self.priority,
            source=RuleSource.MANUAL,
            reason=self.reason,
            updated_at=self.updated_at,
        )


class GeneratedRule(_KeywordRuleFields):
    """Rule produced by AI triage generation; lives inside a TriageCard."""


class TriageCard(TenantScopedModel):
    """AI-generated triage card: a category, its rules and canned responses.

    Cards are created inactive and only contribute to a rule set once an
    administrator activates them.
    """

    card_id: str = Field(default_factory=lambda: str(uuid4()))
    category_slug: str = Field(..., min_length=1)
    title: str = ""
    is_active: bool = False
    rules: list[GeneratedRule] = Field(default_factory=list)
    responses: list[str] = Field(default_factory=list, description="Canned response pool")

    def to_rules(self) -> list[Rule]:
        return [
            Rule(
                rule_id=f"{self.card_id}:{index}",
                keywords=tuple(rule.keywords),
                exclude_keywords=tuple(rule.exclude_keywords),
                service_type=rule.service_type,
                action=rule.action,
                priority=rule.priority,
                source=RuleSource.GENERATED,
                reason=rule.reason,
                updated_at=self.updated_at,
                category_slug=self.category_slug,
            )
            for index, rule in enumerate(self.rules)
        ]


class FallbackRule(BaseModel):
    """The synthesized catch-all. Exactly one per compiled rule set."""

    action: str
    priority: int = Field(default=0, le=0, description="Below every authored rule")
    reason: str = "Catch-all: no other rule matched"

    def to_rule(self, compiled_at: datetime | None = None) -> Rule:
        return Rule(
            rule_id="system:fallback",
            action=self.action,
            priority=self.priority,
            source=RuleSource.SYSTEM,
            reason=self.reason,
            updated_at=compiled_at or utc_now(),
            is_fallback=True,
        )
