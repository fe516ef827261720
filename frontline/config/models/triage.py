"""Triage rule compilation configuration."""

from pydantic import BaseModel, Field


class TriageConfig(BaseModel):
    """Rule compiler settings."""

    cache_ttl_seconds: int = Field(
        default=3600,
        gt=0,
        description="TTL of a compiled rule set; bounds the damage of a missed invalidation",
    )
    cache_key_prefix: str = Field(default="rules", description="Cache key prefix")
    fallback_action: str = Field(
        default="DIRECT_TO_CLASSIFIER",
        description="Action of the synthesized catch-all rule",
    )
    fallback_priority: int = Field(
        default=0,
        le=0,
        description="Priority of the catch-all rule; authored rules start at 1",
    )
