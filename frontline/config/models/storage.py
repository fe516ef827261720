"""Cache and session-state backend configuration."""

from typing import Literal

from pydantic import BaseModel, Field

BackendType = Literal["inmemory", "redis"]


class StorageConfig(BaseModel):
    """Where compiled artifacts and per-call session state live."""

    cache_backend: BackendType = Field(
        default="inmemory",
        description="Backend for compiled rule sets and policies",
    )
    session_backend: BackendType = Field(
        default="inmemory",
        description="Backend for per-call session state",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL used by every redis backend",
    )
    session_ttl_seconds: int = Field(
        default=7200,
        gt=0,
        description="Upper bound on how long a call's state survives",
    )
    session_key_prefix: str = Field(default="call", description="Redis key prefix for call state")
