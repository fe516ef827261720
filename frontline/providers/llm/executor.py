"""LLM Executor: completion calls for pipeline steps using Agno.

Each step (intake, response) gets its own executor configured with a model,
optional fallback models, a hard per-attempt timeout and a small retry
budget with exponential backoff.

Model string format:
    openai/gpt-4o-mini            -> OpenAIChat(id="gpt-4o-mini")
    anthropic/claude-3-5-haiku    -> Claude(id="claude-3-5-haiku")
    openrouter/meta/llama-3.1-70b -> OpenRouter(id="meta/llama-3.1-70b")
    groq/llama-3.1-70b            -> Groq(id="llama-3.1-70b")
    mock/<name>                   -> MockLLMProvider (tests)
"""

from __future__ import annotations

import asyncio
import json
import time
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from frontline.observability.logging import get_logger
from frontline.observability.metrics import LLM_COST, LLM_TOKENS
from frontline.providers.llm.base import (
    LLMMessage,
    LLMResponse,
    ModelError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    TokenUsage,
)
from frontline.providers.llm.mock import MockLLMProvider
from frontline.providers.llm.pricing import estimate_cost

if TYPE_CHECKING:
    from agno.agent import Agent

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


@dataclass
class ExecutionContext:
    """Call identifiers attached to every LLM request made by a turn."""

    tenant_id: UUID
    call_id: str
    turn_number: int | None = None


_execution_context: ContextVar[ExecutionContext | None] = ContextVar(
    "execution_context", default=None
)


def set_execution_context(ctx: ExecutionContext) -> None:
    _execution_context.set(ctx)


def get_execution_context() -> ExecutionContext | None:
    return _execution_context.get()


def clear_execution_context() -> None:
    _execution_context.set(None)


class LLMExecutor:
    """Executes completion calls for one pipeline step.

    Per model, a retryable failure (timeout, rate limit) is retried up to
    ``max_retries`` times, sleeping ``backoff_ms * 2**attempt`` between
    attempts. Other provider errors move on to the next fallback model.
    Cancellation propagates immediately.
    """

    def __init__(
        self,
        model: str,
        fallback_models: list[str] | None = None,
        *,
        timeout: float = 5.0,
        max_retries: int = 1,
        backoff_ms: int = 500,
        step_name: str | None = None,
        mock_provider: MockLLMProvider | None = None,
    ) -> None:
        self._model = model
        self._fallback_models = fallback_models or []
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_ms = backoff_ms
        self._step_name = step_name
        self._mock = mock_provider or MockLLMProvider()
        self._agents: dict[str, Agent] = {}

    @property
    def model(self) -> str:
        return self._model

    @property
    def step_name(self) -> str | None:
        return self._step_name

    async def generate(
        self,
        messages: list[LLMMessage],
        *,
        max_tokens: int = 512,
        temperature: float = 0.3,
    ) -> LLMResponse:
        """Generate text, walking the fallback chain.

        Raises:
            ProviderError: When every model failed
        """
        models_to_try = [self._model, *self._fallback_models]
        last_error: ProviderError | None = None
        attempts = 0

        for model in models_to_try:
            for attempt in range(self._max_retries + 1):
                attempts += 1
                try:
                    response = await self._attempt(model, messages, max_tokens, temperature)
                except ProviderError as e:
                    last_error = e
                    logger.warning(
                        "executor_attempt_failed",
                        model=model,
                        step=self._step_name,
                        attempt=attempt + 1,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    if not e.retryable or attempt == self._max_retries:
                        break
                    await asyncio.sleep(self._backoff_ms * (2**attempt) / 1000)
                    continue

                response.attempts = attempts
                self._record_usage(response)
                return response

        raise ProviderError(
            f"All models failed for step {self._step_name}. "
            f"Tried: {models_to_try}. Last error: {last_error}"
        ) from last_error

    async def generate_structured(
        self,
        prompt: str,
        schema: type[T],
        *,
        system_prompt: str | None = None,
        max_tokens: int = 512,
        temperature: float = 0.0,
    ) -> tuple[T, LLMResponse]:
        """Generate JSON matching ``schema`` and parse it.

        Raises:
            ProviderError: When generation fails or the output does not parse
        """
        schema_str = json.dumps(schema.model_json_schema(), indent=2)
        json_prompt = (
            f"{prompt}\n\nRespond with valid JSON matching this schema:\n"
            f"```json\n{schema_str}\n```\n\nOutput only the JSON, no other text."
        )
        messages = []
        if system_prompt:
            messages.append(LLMMessage(role="system", content=system_prompt))
        messages.append(LLMMessage(role="user", content=json_prompt))

        response = await self.generate(messages, max_tokens=max_tokens, temperature=temperature)
        content = _strip_code_fence(response.content)
        try:
            parsed = schema.model_validate_json(content)
        except ValidationError as e:
            logger.warning(
                "structured_parse_failed",
                schema=schema.__name__,
                step=self._step_name,
                error_count=e.error_count(),
            )
            raise ModelError(f"Unparseable structured response: {e}") from e
        return parsed, response

    async def _attempt(
        self,
        model: str,
        messages: list[LLMMessage],
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        try:
            return await asyncio.wait_for(
                self._generate_with_model(model, messages, max_tokens, temperature),
                timeout=self._timeout,
            )
        except TimeoutError as e:
            raise ProviderTimeoutError(f"{model} timed out after {self._timeout}s") from e

    async def _generate_with_model(
        self,
        model: str,
        messages: list[LLMMessage],
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        provider_type, _ = self._parse_model(model)
        started = time.perf_counter()

        if provider_type == "mock":
            content, usage = await self._mock.complete(
                model, messages, max_tokens=max_tokens, temperature=temperature
            )
        else:
            content, usage = await self._run_agent(model, messages)

        latency_ms = (time.perf_counter() - started) * 1000
        metadata: dict[str, Any] = {
            "latency_ms": round(latency_ms, 2),
            "provider": provider_type,
            "step": self._step_name,
        }
        ctx = get_execution_context()
        if ctx:
            metadata["tenant_id"] = str(ctx.tenant_id)
            metadata["call_id"] = ctx.call_id
            metadata["turn_number"] = ctx.turn_number

        logger.debug(
            "executor_generate_complete",
            model=model,
            step=self._step_name,
            latency_ms=round(latency_ms, 2),
            content_length=len(content),
        )
        return LLMResponse(
            content=content,
            model=model,
            usage=usage,
            cost_usd=estimate_cost(model, usage),
            metadata=metadata,
        )

    async def _run_agent(
        self, model: str, messages: list[LLMMessage]
    ) -> tuple[str, TokenUsage | None]:
        agent = self._get_or_create_agent(model)
        system_prompt = next((m.content for m in messages if m.role == "system"), None)
        if system_prompt:
            agent.instructions = [system_prompt]

        try:
            run_response = await agent.arun(_format_input(messages))
        except Exception as e:  # noqa: BLE001
            error_msg = str(e).lower()
            if "rate" in error_msg and "limit" in error_msg:
                raise RateLimitError(f"Rate limited: {e}") from e
            raise ProviderError(f"Agno execution failed: {e}") from e

        content = run_response.content if run_response.content else ""
        return str(content), _usage_from_run(run_response)

    def _get_or_create_agent(self, model: str) -> Agent:
        if model in self._agents:
            return self._agents[model]

        from agno.agent import Agent

        agent = Agent(
            model=self._create_agno_model(model),
            markdown=False,
        )
        self._agents[model] = agent
        return agent

    def _create_agno_model(self, model: str) -> Any:
        provider_type, api_model = self._parse_model(model)

        if provider_type == "openai":
            from agno.models.openai import OpenAIChat

            return OpenAIChat(id=api_model)
        if provider_type == "anthropic":
            from agno.models.anthropic import Claude

            return Claude(id=api_model)
        if provider_type == "groq":
            from agno.models.groq import Groq

            return Groq(id=api_model)

        from agno.models.openrouter import OpenRouter

        if provider_type != "openrouter":
            logger.warning(
                "unknown_provider_defaulting_to_openrouter",
                model=model,
                provider_type=provider_type,
            )
            return OpenRouter(id=model)
        return OpenRouter(id=api_model)

    def _record_usage(self, response: LLMResponse) -> None:
        if response.usage is None:
            return
        LLM_TOKENS.labels(model=response.model, direction="input").inc(response.usage.prompt_tokens)
        LLM_TOKENS.labels(model=response.model, direction="output").inc(
            response.usage.completion_tokens
        )
        LLM_COST.labels(model=response.model).inc(response.cost_usd)

    @staticmethod
    def _parse_model(model: str) -> tuple[str, str]:
        """Split a model string into (provider_type, api_model).

        "openrouter/meta/llama-3.1-70b" -> ("openrouter", "meta/llama-3.1-70b")
        "openai/gpt-4o-mini" -> ("openai", "gpt-4o-mini")
        "gpt-4o-mini" -> ("openai", "gpt-4o-mini")
        """
        provider, sep, rest = model.partition("/")
        if not sep:
            return "openai", model
        return provider, rest


def create_executor_from_step_config(
    step_config: Any,
    step_name: str,
    mock_provider: MockLLMProvider | None = None,
) -> LLMExecutor:
    """Build an executor from an IntakeStepConfig or ResponseStepConfig."""
    return LLMExecutor(
        model=step_config.model,
        fallback_models=list(getattr(step_config, "fallback_models", [])),
        timeout=step_config.timeout_seconds,
        max_retries=getattr(step_config, "max_retries", 0),
        backoff_ms=getattr(step_config, "backoff_ms", 0),
        step_name=step_name,
        mock_provider=mock_provider,
    )


def _format_input(messages: list[LLMMessage]) -> str:
    turns = [m for m in messages if m.role != "system"]
    if len(turns) == 1:
        return turns[0].content
    return "\n\n".join(f"{m.role.capitalize()}: {m.content}" for m in turns)


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        start = content.find("\n") + 1
        end = content.rfind("```")
        if end > start:
            return content[start:end].strip()
    return content


def _usage_from_run(run_response: Any) -> TokenUsage | None:
    """Token counts from an agno run, whichever shape its metrics take."""
    metrics = getattr(run_response, "metrics", None)
    if metrics is None:
        return None

    def read(name: str) -> int:
        value = metrics.get(name, 0) if isinstance(metrics, dict) else getattr(metrics, name, 0)
        if isinstance(value, list):
            return int(sum(value))
        return int(value or 0)

    return TokenUsage(prompt_tokens=read("input_tokens"), completion_tokens=read("output_tokens"))
