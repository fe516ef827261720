"""Policy compilation and evaluation configuration."""

from pydantic import BaseModel, Field, model_validator


class PolicyConfig(BaseModel):
    """Policy engine settings.

    The latency budget is advisory: overruns are logged and, above
    ``alert_ms``, raised as an operational alert. Evaluation is never
    aborted.
    """

    budget_ms: float = Field(default=10.0, gt=0, description="Soft latency budget per apply")
    alert_ms: float = Field(default=15.0, gt=0, description="Overrun that triggers an alert")
    cache_ttl_seconds: int = Field(default=86400, gt=0, description="TTL of compiled policies")
    cache_key_prefix: str = Field(default="policy", description="Cache key prefix")
    conflict_threshold: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Keyword overlap above which same-priority edge cases conflict",
    )
    default_priority: int = Field(default=10, description="Priority of entries that set none")
    business_hours_start: int = Field(default=7, ge=0, le=23)
    business_hours_end: int = Field(default=19, ge=1, le=24)
    handoff_message: str = Field(
        default="Let me connect you with someone who can help.",
        description="Spoken when a transfer is not authorized",
    )

    @model_validator(mode="after")
    def _check_thresholds(self) -> "PolicyConfig":
        if self.alert_ms < self.budget_ms:
            raise ValueError("alert_ms must not be lower than budget_ms")
        if self.business_hours_end <= self.business_hours_start:
            raise ValueError("business_hours_end must be after business_hours_start")
        return self
