"""Loaded policy: a CompiledPolicy with its matchers built."""

from frontline.policy.guardrails import normalize_phone, normalize_price
from frontline.policy.models import (
    BehaviorFlag,
    CompiledEdgeCase,
    CompiledPolicy,
    CompiledTransferRule,
    GuardrailFlag,
)
from frontline.policy.patterns import PatternMatcher, build_matcher


class Policy:
    """Immutable per-tenant policy, ready for evaluation.

    Built once per load from a CompiledPolicy and shared by every turn that
    uses it.
    """

    __slots__ = (
        "compiled",
        "edge_cases",
        "transfer_rules",
        "allowed_actions",
        "guardrails",
        "behavior",
        "approved_prices",
        "approved_phones",
    )

    def __init__(self, compiled: CompiledPolicy) -> None:
        self.compiled = compiled
        self.edge_cases: tuple[tuple[CompiledEdgeCase, tuple[PatternMatcher, ...]], ...] = tuple(
            (edge_case, tuple(build_matcher(spec) for spec in edge_case.patterns))
            for edge_case in compiled.edge_cases
        )
        self.transfer_rules: tuple[
            tuple[CompiledTransferRule, tuple[PatternMatcher, ...]], ...
        ] = tuple(
            (rule, tuple(build_matcher(spec) for spec in rule.patterns))
            for rule in compiled.transfer_rules
        )
        self.allowed_actions: frozenset[str] = frozenset(compiled.allowed_actions)
        self.guardrails: frozenset[GuardrailFlag] = frozenset(compiled.guardrails)
        self.behavior: frozenset[BehaviorFlag] = frozenset(compiled.behavior)
        self.approved_prices: frozenset[str] = frozenset(
            normalize_price(price) for price in compiled.approved_prices
        )
        self.approved_phones: frozenset[str] = frozenset(
            normalize_phone(phone) for phone in compiled.approved_phones
        )

    @property
    def tenant_id(self):
        return self.compiled.tenant_id

    @property
    def company_name(self) -> str | None:
        return self.compiled.company_name

    @property
    def handoff_message(self) -> str:
        return self.compiled.handoff_message

    @property
    def checksum(self) -> str:
        return self.compiled.checksum

    def __repr__(self) -> str:
        return (
            f"Policy(tenant_id={self.compiled.tenant_id}, version={self.compiled.version}, "
            f"checksum={self.compiled.checksum[:12]})"
        )
