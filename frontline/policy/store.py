"""PolicyStore abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from frontline.policy.models import PolicyDocument


class PolicyStore(ABC):
    """Document store holding each tenant's authored policy."""

    @abstractmethod
    async def get_document(self, tenant_id: UUID) -> PolicyDocument | None:
        """Current policy document of a tenant, if one exists."""
        pass

    @abstractmethod
    async def save_document(self, document: PolicyDocument) -> int:
        """Store a document, returning its version."""
        pass
