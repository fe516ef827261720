"""HTTP API configuration."""

from pydantic import BaseModel, Field


class APIConfig(BaseModel):
    """Settings for the telephony-facing HTTP surface."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, gt=0, lt=65536, description="Bind port")
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Origins allowed to call the API from a browser",
    )
