"""Response generators used by the response stage."""

from abc import ABC, abstractmethod

from frontline.config.models.pipeline import ResponseStepConfig
from frontline.conversation.models import TurnContext
from frontline.observability.logging import get_logger
from frontline.providers.llm import LLMExecutor, LLMMessage, ModelError
from frontline.triage.compiler import RuleCompiler

logger = get_logger(__name__)

RESPONSE_SYSTEM_PROMPT = """You are a friendly, efficient phone receptionist for a home-services company.
Reply to the caller in one or two short spoken sentences.
Do not quote prices, phone numbers or web addresses unless they were given to you.
Ask for one missing detail at a time. Never promise a specific technician or arrival time."""


class ResponseGenerator(ABC):
    """Produces the proposed response text for a turn.

    Raises ProviderError (or a subclass) when no text can be produced.
    """

    @abstractmethod
    async def generate(self, ctx: TurnContext) -> str:
        pass


class LLMResponseGenerator(ResponseGenerator):
    """Free-text reply from the response model."""

    def __init__(self, executor: LLMExecutor, config: ResponseStepConfig | None = None) -> None:
        self._executor = executor
        self._config = config or ResponseStepConfig()

    async def generate(self, ctx: TurnContext) -> str:
        lines = [f'Caller said: "{ctx.effective_input}"']
        if ctx.intent:
            lines.append(f"Intent: {ctx.intent}")
        if ctx.classification is not None and ctx.classification.service_type:
            lines.append(f"Service type: {ctx.classification.service_type}")
        if ctx.entities:
            known = ", ".join(f"{k}={v}" for k, v in sorted(ctx.entities.items()))
            lines.append(f"Known caller details: {known}")

        response = await self._executor.generate(
            [
                LLMMessage(role="system", content=RESPONSE_SYSTEM_PROMPT),
                LLMMessage(role="user", content="\n".join(lines)),
            ],
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
        )
        text = response.content.strip()
        if not text:
            raise ModelError(f"Empty response from {response.model}")
        return text


class PooledResponseGenerator(ResponseGenerator):
    """Canned responses from the matched category's pool.

    Pools come from active triage cards in the compiled rule set. The pool
    entry rotates with the turn number so a caller does not hear the same
    sentence twice in a row. Without a pool the fallback generator answers.
    """

    def __init__(self, compiler: RuleCompiler, fallback: ResponseGenerator) -> None:
        self._compiler = compiler
        self._fallback = fallback

    async def generate(self, ctx: TurnContext) -> str:
        slug = ctx.classification.rule.category_slug if ctx.classification else None
        if slug:
            rule_set = await self._compiler.compile(ctx.tenant_id)
            pool = rule_set.response_pools.get(slug)
            if pool:
                logger.debug("response_from_pool", category=slug, pool_size=len(pool))
                return pool[(ctx.turn_number - 1) % len(pool)]
        return await self._fallback.generate(ctx)
