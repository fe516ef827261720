"""Tests for IntentExtractor."""

import json

import pytest

from frontline.config.models.pipeline import IntakeStepConfig
from frontline.intake import IntentExtraction, IntentExtractor
from frontline.providers.llm import LLMExecutor, MockLLMProvider, ModelError


def extraction_json(**fields: object) -> str:
    payload = {
        "cleaned_input": "my furnace is making a banging noise",
        "intent": "Repair Request",
        "keywords": ["furnace", "noise"],
        "entities": {"name": "Dana", "phone": None, "unit": 4},
        "urgency": "high",
        "confidence": 0.82,
    }
    payload.update(fields)
    return json.dumps(payload)


@pytest.fixture
def mock() -> MockLLMProvider:
    return MockLLMProvider()


@pytest.fixture
def extractor(mock: MockLLMProvider) -> IntentExtractor:
    executor = LLMExecutor("mock/intake", max_retries=0, mock_provider=mock, step_name="intake")
    return IntentExtractor(executor)


class TestIntentExtraction:
    def test_intent_normalized(self) -> None:
        assert IntentExtraction(cleaned_input="x", intent=" Billing Question ").intent == (
            "billing_question"
        )
        assert IntentExtraction(cleaned_input="x", intent="  ").intent is None

    def test_entity_strings_drop_empty_values(self) -> None:
        extraction = IntentExtraction(
            cleaned_input="x", entities={"name": "Dana", "phone": None, "unit": 4, "city": ""}
        )

        assert extraction.entity_strings() == {"name": "Dana", "unit": "4"}


class TestIntentExtractor:
    """Extraction succeeds with parseable output and degrades otherwise."""

    async def test_parses_model_output(
        self, extractor: IntentExtractor, mock: MockLLMProvider
    ) -> None:
        mock.queue_response(extraction_json())

        result = await extractor.extract("uh my furnace is um making a banging noise")

        assert result.fallback is False
        assert result.extraction.intent == "repair_request"
        assert result.extraction.keywords == ["furnace", "noise"]
        assert result.extraction.urgency == "high"
        assert result.attempts == 1
        assert result.cost_usd > 0

    async def test_company_name_in_prompt(
        self, extractor: IntentExtractor, mock: MockLLMProvider
    ) -> None:
        mock.queue_response(extraction_json())

        await extractor.extract("hello", company_name="Acme Heating")

        prompt = mock.calls[0]["messages"][-1].content
        assert prompt.startswith("Company: Acme Heating")

    async def test_blank_cleaned_input_replaced(
        self, extractor: IntentExtractor, mock: MockLLMProvider
    ) -> None:
        mock.queue_response(extraction_json(cleaned_input=" "))

        result = await extractor.extract("need a tune up")

        assert result.extraction.cleaned_input == "need a tune up"

    async def test_provider_error_falls_back(
        self, extractor: IntentExtractor, mock: MockLLMProvider
    ) -> None:
        mock.queue_error(ModelError("model unavailable"))

        result = await extractor.extract("need a tune up")

        assert result.fallback is True
        assert result.extraction.cleaned_input == "need a tune up"
        assert result.extraction.intent is None
        assert result.extraction.confidence == 0.0
        assert result.error is not None

    async def test_unparseable_output_falls_back(
        self, extractor: IntentExtractor, mock: MockLLMProvider
    ) -> None:
        mock.queue_response("I think they want a repair")

        result = await extractor.extract("need a repair")

        assert result.fallback is True
        assert result.extraction.cleaned_input == "need a repair"

    async def test_empty_input_skips_model(
        self, extractor: IntentExtractor, mock: MockLLMProvider
    ) -> None:
        result = await extractor.extract("   ")

        assert result.fallback is True
        assert mock.calls == []

    async def test_disabled_skips_model(self, mock: MockLLMProvider) -> None:
        executor = LLMExecutor("mock/intake", mock_provider=mock)
        extractor = IntentExtractor(executor, IntakeStepConfig(enabled=False))

        result = await extractor.extract("need a repair")

        assert result.fallback is True
        assert result.error is None
        assert mock.calls == []
