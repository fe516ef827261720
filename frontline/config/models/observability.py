"""Logging and metrics configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class ObservabilityConfig(BaseModel):
    """Logging output settings."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="json for production, console for local development",
    )
    redact_pii: bool = Field(
        default=True,
        description="Scrub emails, phone numbers and caller speech from log events",
    )
