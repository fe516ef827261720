"""Triage rule models."""

from frontline.triage.models.compiled import CompiledRuleSet, MatchedKeyword, MatchResult
from frontline.triage.models.enums import KeywordSource, RuleAction, RuleSource
from frontline.triage.models.rule import (
    FallbackRule,
    GeneratedRule,
    ManualRule,
    Rule,
    TriageCard,
)

__all__ = [
    "CompiledRuleSet",
    "FallbackRule",
    "GeneratedRule",
    "KeywordSource",
    "ManualRule",
    "MatchResult",
    "MatchedKeyword",
    "Rule",
    "RuleAction",
    "RuleSource",
    "TriageCard",
]
