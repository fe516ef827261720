"""Base models shared by tenant-scoped domain entities."""

from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class TenantScopedModel(BaseModel):
    """Base for entities that belong to exactly one tenant."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    tenant_id: UUID = Field(..., description="Owning tenant identifier")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def touch(self) -> None:
        """Bump updated_at to now."""
        self.updated_at = utc_now()
