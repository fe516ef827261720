"""LLM data models and error types."""

from typing import Any

from pydantic import BaseModel, Field


class LLMMessage(BaseModel):
    """A message in a prompt."""

    role: str = Field(..., description="system, user or assistant")
    content: str


class TokenUsage(BaseModel):
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class LLMResponse(BaseModel):
    """Response from one completion call."""

    content: str
    model: str = Field(..., description="Model that produced the content")
    usage: TokenUsage | None = None
    cost_usd: float = Field(default=0.0, ge=0.0)
    attempts: int = Field(default=1, ge=1, description="Attempts spent, across models")
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProviderError(Exception):
    """Base exception for LLM provider errors."""

    retryable: bool = False


class AuthenticationError(ProviderError):
    """Invalid or missing API key."""


class RateLimitError(ProviderError):
    """Rate limit exceeded."""

    retryable = True


class ProviderTimeoutError(ProviderError):
    """The call did not finish within the hard timeout."""

    retryable = True


class ModelError(ProviderError):
    """Model not found, unavailable, or returned unusable output."""


class ContentFilterError(ProviderError):
    """Content blocked by a safety filter."""
