"""Intent extraction with a language model.

The model cleans up the transcribed utterance, names the intent, extracts
keywords and caller details, and may ask for the turn to be short-circuited
(wrong number, caller hanging up). Any failure degrades to the raw
utterance, unclassified.
"""

import time
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from frontline.config.models.pipeline import IntakeStepConfig
from frontline.observability.logging import get_logger
from frontline.providers.llm import LLMExecutor, ProviderError, TokenUsage

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are the listening layer of a phone receptionist for a home-services company.
Each input is one transcribed caller utterance, possibly with speech-recognition errors.

Return:
- cleaned_input: the utterance with filler words and transcription noise removed
- intent: a short snake_case label (billing, emergency, scheduling, repair, pricing, wrong_number, ...), or null if unclear
- keywords: up to 8 short keywords or phrases that capture the request
- entities: caller details explicitly stated (name, phone, address, appointment_time)
- urgency: low, normal, high or emergency
- tone: one word describing the caller's tone
- confidence: 0.0 to 1.0, how sure you are about the intent
- should_short_circuit / short_circuit_response: set only when the caller clearly dialled the wrong number or is ending the call, with the exact sentence to say

Never invent details that were not spoken."""


class IntentExtraction(BaseModel):
    """Structured reading of one caller utterance."""

    cleaned_input: str
    intent: str | None = None
    keywords: list[str] = Field(default_factory=list)
    entities: dict[str, str | int | float | None] = Field(default_factory=dict)
    urgency: Literal["low", "normal", "high", "emergency"] = "normal"
    tone: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    should_short_circuit: bool = False
    short_circuit_response: str | None = None

    @field_validator("intent")
    @classmethod
    def _normalize_intent(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().lower().replace(" ", "_")
        return value or None

    def entity_strings(self) -> dict[str, str]:
        return {key: str(value) for key, value in self.entities.items() if value not in (None, "")}


class ExtractionResult(BaseModel):
    extraction: IntentExtraction
    fallback: bool = Field(default=False, description="True when the raw input was used as-is")
    usage: TokenUsage | None = None
    cost_usd: float = 0.0
    latency_ms: float = 0.0
    attempts: int = 0
    error: str | None = None


class IntentExtractor:
    """Calls the intake model and never raises on provider failure."""

    def __init__(self, executor: LLMExecutor, config: IntakeStepConfig | None = None) -> None:
        self._executor = executor
        self._config = config or IntakeStepConfig()

    async def extract(self, utterance: str, *, company_name: str | None = None) -> ExtractionResult:
        """Read the caller's utterance.

        Returns a fallback result (raw input, no intent, zero confidence)
        when the model times out, errors, or returns unparseable output.
        """
        if not self._config.enabled or not utterance.strip():
            return self._fallback(utterance, error=None)

        prompt = f'Caller said: "{utterance}"'
        if company_name:
            prompt = f"Company: {company_name}\n{prompt}"

        started = time.perf_counter()
        try:
            extraction, response = await self._executor.generate_structured(
                prompt,
                IntentExtraction,
                system_prompt=SYSTEM_PROMPT,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
            )
        except ProviderError as e:
            logger.warning(
                "intent_extraction_failed",
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return self._fallback(utterance, error=str(e))

        if not extraction.cleaned_input.strip():
            extraction = extraction.model_copy(update={"cleaned_input": utterance})

        latency_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "intent_extracted",
            intent=extraction.intent,
            confidence=extraction.confidence,
            urgency=extraction.urgency,
            keyword_count=len(extraction.keywords),
            short_circuit=extraction.should_short_circuit,
            cost_usd=round(response.cost_usd, 6),
            latency_ms=round(latency_ms, 2),
        )
        return ExtractionResult(
            extraction=extraction,
            usage=response.usage,
            cost_usd=response.cost_usd,
            latency_ms=latency_ms,
            attempts=response.attempts,
        )

    @staticmethod
    def _fallback(utterance: str, error: str | None) -> ExtractionResult:
        return ExtractionResult(
            extraction=IntentExtraction(cleaned_input=utterance),
            fallback=True,
            error=error,
        )
