"""Rule authoring: writes to the rule store, always followed by invalidation."""

from typing import Any
from uuid import UUID

from frontline.errors import RuleNotFoundError
from frontline.observability.logging import get_logger
from frontline.triage.compiler import RuleCompiler
from frontline.triage.models import ManualRule, TriageCard
from frontline.triage.store import RuleStore

logger = get_logger(__name__)


class RuleAuthoringService:
    """Mutating operations on manual rules and triage cards.

    Every successful mutation drops the tenant's compiled rule set so the
    next turn rebuilds it from the store.
    """

    def __init__(self, store: RuleStore, compiler: RuleCompiler) -> None:
        self._store = store
        self._compiler = compiler

    async def create_rule(self, rule: ManualRule) -> ManualRule:
        await self._store.save_manual_rule(rule)
        await self._changed(rule.tenant_id, "rule_created", rule_id=rule.rule_id)
        return rule

    async def update_rule(self, tenant_id: UUID, rule_id: str, **changes: Any) -> ManualRule:
        current = await self._require_rule(tenant_id, rule_id)
        updated = ManualRule.model_validate(
            {**current.model_dump(), **changes, "tenant_id": tenant_id, "rule_id": rule_id}
        )
        updated.touch()
        await self._store.save_manual_rule(updated)
        await self._changed(tenant_id, "rule_updated", rule_id=rule_id, fields=sorted(changes))
        return updated

    async def delete_rule(self, tenant_id: UUID, rule_id: str) -> None:
        if not await self._store.delete_manual_rule(tenant_id, rule_id):
            raise RuleNotFoundError(f"Rule {rule_id} not found")
        await self._changed(tenant_id, "rule_deleted", rule_id=rule_id)

    async def set_rule_active(self, tenant_id: UUID, rule_id: str, active: bool) -> ManualRule:
        rule = await self._require_rule(tenant_id, rule_id)
        rule.is_active = active
        rule.touch()
        await self._store.save_manual_rule(rule)
        await self._changed(tenant_id, "rule_activation_changed", rule_id=rule_id, active=active)
        return rule

    async def create_card(self, card: TriageCard) -> TriageCard:
        await self._store.save_card(card)
        await self._changed(card.tenant_id, "card_created", card_id=card.card_id)
        return card

    async def update_card(self, tenant_id: UUID, card_id: str, **changes: Any) -> TriageCard:
        current = await self._require_card(tenant_id, card_id)
        updated = TriageCard.model_validate(
            {**current.model_dump(), **changes, "tenant_id": tenant_id, "card_id": card_id}
        )
        updated.touch()
        await self._store.save_card(updated)
        await self._changed(tenant_id, "card_updated", card_id=card_id, fields=sorted(changes))
        return updated

    async def delete_card(self, tenant_id: UUID, card_id: str) -> None:
        if not await self._store.delete_card(tenant_id, card_id):
            raise RuleNotFoundError(f"Triage card {card_id} not found")
        await self._changed(tenant_id, "card_deleted", card_id=card_id)

    async def activate_card(self, tenant_id: UUID, card_id: str) -> TriageCard:
        return await self._set_card_active(tenant_id, card_id, True)

    async def deactivate_card(self, tenant_id: UUID, card_id: str) -> TriageCard:
        return await self._set_card_active(tenant_id, card_id, False)

    async def _set_card_active(self, tenant_id: UUID, card_id: str, active: bool) -> TriageCard:
        card = await self._require_card(tenant_id, card_id)
        card.is_active = active
        card.touch()
        await self._store.save_card(card)
        await self._changed(tenant_id, "card_activation_changed", card_id=card_id, active=active)
        return card

    async def _require_rule(self, tenant_id: UUID, rule_id: str) -> ManualRule:
        rule = await self._store.get_manual_rule(tenant_id, rule_id)
        if rule is None:
            raise RuleNotFoundError(f"Rule {rule_id} not found")
        return rule

    async def _require_card(self, tenant_id: UUID, card_id: str) -> TriageCard:
        card = await self._store.get_card(tenant_id, card_id)
        if card is None:
            raise RuleNotFoundError(f"Triage card {card_id} not found")
        return card

    async def _changed(self, tenant_id: UUID, event: str, **fields: Any) -> None:
        logger.info(event, tenant_id=str(tenant_id), **fields)
        await self._compiler.invalidate(tenant_id)
