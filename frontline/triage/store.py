"""RuleStore abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from frontline.triage.models import ManualRule, TriageCard


class RuleStore(ABC):
    """Document store holding a tenant's rule sources.

    Reads feed the RuleCompiler. Writes are reserved for rule authoring,
    which must invalidate the tenant's compiled rule set afterwards.
    """

    @abstractmethod
    async def list_manual_rules(self, tenant_id: UUID) -> list[ManualRule]:
        """All manual rules of a tenant, active or not."""
        pass

    @abstractmethod
    async def list_cards(self, tenant_id: UUID) -> list[TriageCard]:
        """All triage cards of a tenant, active or not."""
        pass

    @abstractmethod
    async def get_manual_rule(self, tenant_id: UUID, rule_id: str) -> ManualRule | None:
        pass

    @abstractmethod
    async def save_manual_rule(self, rule: ManualRule) -> str:
        """Insert or replace a manual rule, returning its ID."""
        pass

    @abstractmethod
    async def delete_manual_rule(self, tenant_id: UUID, rule_id: str) -> bool:
        pass

    @abstractmethod
    async def get_card(self, tenant_id: UUID, card_id: str) -> TriageCard | None:
        pass

    @abstractmethod
    async def save_card(self, card: TriageCard) -> str:
        """Insert or replace a triage card, returning its ID."""
        pass

    @abstractmethod
    async def delete_card(self, tenant_id: UUID, card_id: str) -> bool:
        pass
