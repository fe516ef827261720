"""Language-model access for pipeline steps."""

from frontline.providers.llm.base import (
    AuthenticationError,
    ContentFilterError,
    LLMMessage,
    LLMResponse,
    ModelError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    TokenUsage,
)
from frontline.providers.llm.executor import (
    ExecutionContext,
    LLMExecutor,
    clear_execution_context,
    create_executor_from_step_config,
    get_execution_context,
    set_execution_context,
)
from frontline.providers.llm.mock import MockLLMProvider
from frontline.providers.llm.pricing import MODEL_PRICING, estimate_cost

__all__ = [
    "AuthenticationError",
    "ContentFilterError",
    "ExecutionContext",
    "LLMExecutor",
    "LLMMessage",
    "LLMResponse",
    "MODEL_PRICING",
    "MockLLMProvider",
    "ModelError",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitError",
    "TokenUsage",
    "clear_execution_context",
    "create_executor_from_step_config",
    "estimate_cost",
    "get_execution_context",
    "set_execution_context",
]
