"""Compiled rule set and match result models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from frontline.models import utc_now
from frontline.triage.models.enums import KeywordSource
from frontline.triage.models.rule import Rule


class CompiledRuleSet(BaseModel):
    """A tenant's rules in final evaluation order.

    The order is fixed at compile time and is the only precedence the
    matcher knows about. Serialized as JSON into the artifact cache.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: UUID
    rules: tuple[Rule, ...]
    response_pools: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Canned responses keyed by triage category slug",
    )
    compiled_at: datetime = Field(default_factory=utc_now)
    source_counts: dict[str, int] = Field(default_factory=dict)

    @property
    def fallback(self) -> Rule | None:
        for rule in self.rules:
            if rule.is_fallback:
                return rule
        return None

    def __len__(self) -> int:
        return len(self.rules)


class MatchedKeyword(BaseModel):
    """A required keyword and the input that satisfied it."""

    model_config = ConfigDict(frozen=True)

    keyword: str
    source: KeywordSource


class MatchResult(BaseModel):
    """Outcome of triage: the winning rule and the evidence for it."""

    model_config = ConfigDict(frozen=True)

    rule: Rule
    matched_keywords: tuple[MatchedKeyword, ...] = ()
    rules_evaluated: int = Field(..., ge=1)

    @property
    def is_fallback(self) -> bool:
        return self.rule.is_fallback

    @property
    def action(self) -> str:
        return self.rule.action

    @property
    def service_type(self) -> str | None:
        return self.rule.service_type

    def summary(self) -> str:
        """Short description kept in session state as the last decision."""
        return f"{self.rule.action}:{self.rule.rule_id}"
