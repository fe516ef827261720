"""In-memory implementation of RuleStore."""

from uuid import UUID

from frontline.triage.models import ManualRule, TriageCard
from frontline.triage.store import RuleStore


class InMemoryRuleStore(RuleStore):
    """Dict-backed RuleStore for tests and development.

    Returns copies so callers cannot mutate stored documents in place.
    """

    def __init__(self) -> None:
        self._rules: dict[tuple[UUID, str], ManualRule] = {}
        self._cards: dict[tuple[UUID, str], TriageCard] = {}

    async def list_manual_rules(self, tenant_id: UUID) -> list[ManualRule]:
        return [
            rule.model_copy(deep=True)
            for (owner, _), rule in self._rules.items()
            if owner == tenant_id
        ]

    async def list_cards(self, tenant_id: UUID) -> list[TriageCard]:
        return [
            card.model_copy(deep=True)
            for (owner, _), card in self._cards.items()
            if owner == tenant_id
        ]

    async def get_manual_rule(self, tenant_id: UUID, rule_id: str) -> ManualRule | None:
        rule = self._rules.get((tenant_id, rule_id))
        return rule.model_copy(deep=True) if rule else None

    async def save_manual_rule(self, rule: ManualRule) -> str:
        self._rules[(rule.tenant_id, rule.rule_id)] = rule.model_copy(deep=True)
        return rule.rule_id

    async def delete_manual_rule(self, tenant_id: UUID, rule_id: str) -> bool:
        return self._rules.pop((tenant_id, rule_id), None) is not None

    async def get_card(self, tenant_id: UUID, card_id: str) -> TriageCard | None:
        card = self._cards.get((tenant_id, card_id))
        return card.model_copy(deep=True) if card else None

    async def save_card(self, card: TriageCard) -> str:
        self._cards[(card.tenant_id, card.card_id)] = card.model_copy(deep=True)
        return card.card_id

    async def delete_card(self, tenant_id: UUID, card_id: str) -> bool:
        return self._cards.pop((tenant_id, card_id), None) is not None
