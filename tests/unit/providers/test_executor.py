"""Tests for LLMExecutor against the mock provider."""

from unittest.mock import AsyncMock
from uuid import UUID

import pytest
from pydantic import BaseModel

from frontline.config.models.pipeline import IntakeStepConfig
from frontline.providers.llm import (
    AuthenticationError,
    ExecutionContext,
    LLMExecutor,
    LLMMessage,
    MockLLMProvider,
    ModelError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    clear_execution_context,
    create_executor_from_step_config,
    estimate_cost,
    set_execution_context,
)

MESSAGES = [
    LLMMessage(role="system", content="Be brief."),
    LLMMessage(role="user", content="My furnace is making a banging noise"),
]


class Reading(BaseModel):
    value: int


@pytest.fixture
def no_backoff(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    """Replace backoff sleeps so retries run instantly."""
    sleep = AsyncMock()
    monkeypatch.setattr("frontline.providers.llm.executor.asyncio.sleep", sleep)
    return sleep


class TestGenerate:
    """Tests for LLMExecutor.generate."""

    async def test_returns_mock_content(self) -> None:
        mock = MockLLMProvider(responses=["We can send a technician."])
        executor = LLMExecutor("mock/primary", mock_provider=mock, step_name="response")

        response = await executor.generate(MESSAGES, max_tokens=64, temperature=0.2)

        assert response.content == "We can send a technician."
        assert response.model == "mock/primary"
        assert response.attempts == 1
        assert response.usage is not None
        assert response.cost_usd == pytest.approx(estimate_cost("gpt-4o-mini", response.usage))
        assert response.metadata["provider"] == "mock"
        assert mock.calls[0]["max_tokens"] == 64
        assert mock.calls[0]["temperature"] == 0.2

    async def test_retryable_error_retried_with_backoff(self, no_backoff: AsyncMock) -> None:
        mock = MockLLMProvider(errors=[RateLimitError("slow down")], responses=["ok"])
        executor = LLMExecutor("mock/primary", max_retries=1, backoff_ms=100, mock_provider=mock)

        response = await executor.generate(MESSAGES)

        assert response.content == "ok"
        assert response.attempts == 2
        no_backoff.assert_awaited_once_with(0.1)

    async def test_non_retryable_error_moves_to_fallback(self, no_backoff: AsyncMock) -> None:
        mock = MockLLMProvider(errors=[ModelError("model retired")], responses=["from backup"])
        executor = LLMExecutor(
            "mock/primary",
            ["mock/backup"],
            max_retries=2,
            mock_provider=mock,
        )

        response = await executor.generate(MESSAGES)

        assert response.model == "mock/backup"
        assert response.attempts == 2
        assert [call["model"] for call in mock.calls] == ["mock/primary", "mock/backup"]
        no_backoff.assert_not_awaited()

    async def test_timeout_becomes_provider_timeout(self) -> None:
        mock = MockLLMProvider(delay_seconds=0.5)
        executor = LLMExecutor("mock/slow", timeout=0.01, max_retries=0, mock_provider=mock)

        with pytest.raises(ProviderError) as exc_info:
            await executor.generate(MESSAGES)

        assert isinstance(exc_info.value.__cause__, ProviderTimeoutError)

    async def test_all_models_failing_raises(self) -> None:
        mock = MockLLMProvider(errors=[AuthenticationError("bad key"), AuthenticationError("bad key")])
        executor = LLMExecutor("mock/a", ["mock/b"], max_retries=0, mock_provider=mock)

        with pytest.raises(ProviderError, match="All models failed"):
            await executor.generate(MESSAGES)

    async def test_execution_context_in_metadata(self, tenant_id: UUID) -> None:
        executor = LLMExecutor("mock/primary")
        set_execution_context(ExecutionContext(tenant_id=tenant_id, call_id="call-7", turn_number=2))
        try:
            response = await executor.generate(MESSAGES)
        finally:
            clear_execution_context()

        assert response.metadata["tenant_id"] == str(tenant_id)
        assert response.metadata["call_id"] == "call-7"
        assert response.metadata["turn_number"] == 2


class TestGenerateStructured:
    async def test_parses_fenced_json(self) -> None:
        mock = MockLLMProvider(responses=['```json\n{"value": 3}\n```'])
        executor = LLMExecutor("mock/primary", mock_provider=mock)

        parsed, response = await executor.generate_structured(
            "How many?", Reading, system_prompt="Count things."
        )

        assert parsed == Reading(value=3)
        assert response.model == "mock/primary"
        sent = mock.calls[0]["messages"]
        assert sent[0].role == "system"
        assert "Respond with valid JSON" in sent[1].content

    async def test_unparseable_output_is_model_error(self) -> None:
        mock = MockLLMProvider(responses=["three"])
        executor = LLMExecutor("mock/primary", mock_provider=mock)

        with pytest.raises(ModelError):
            await executor.generate_structured("How many?", Reading)


class TestStepConfig:
    def test_executor_from_step_config(self) -> None:
        config = IntakeStepConfig(
            model="mock/intake",
            fallback_models=["mock/backup"],
            timeout_seconds=2.5,
            max_retries=2,
        )

        executor = create_executor_from_step_config(config, "intake")

        assert executor.model == "mock/intake"
        assert executor.step_name == "intake"

    @pytest.mark.parametrize(
        ("model", "expected"),
        [
            ("openai/gpt-4o-mini", ("openai", "gpt-4o-mini")),
            ("openrouter/meta/llama-3.1-70b", ("openrouter", "meta/llama-3.1-70b")),
            ("gpt-4o-mini", ("openai", "gpt-4o-mini")),
            ("mock/test", ("mock", "test")),
        ],
    )
    def test_parse_model(self, model: str, expected: tuple[str, str]) -> None:
        assert LLMExecutor._parse_model(model) == expected
