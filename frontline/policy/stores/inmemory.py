"""In-memory implementation of PolicyStore."""

from uuid import UUID

from frontline.policy.models import PolicyDocument
from frontline.policy.store import PolicyStore


class InMemoryPolicyStore(PolicyStore):
    """Keeps the latest policy document per tenant."""

    def __init__(self) -> None:
        self._documents: dict[UUID, PolicyDocument] = {}

    async def get_document(self, tenant_id: UUID) -> PolicyDocument | None:
        document = self._documents.get(tenant_id)
        return document.model_copy(deep=True) if document else None

    async def save_document(self, document: PolicyDocument) -> int:
        self._documents[document.tenant_id] = document.model_copy(deep=True)
        return document.version
