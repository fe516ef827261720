"""Wiring of the turn pipeline from settings."""

from dataclasses import dataclass

import redis.asyncio as redis

from frontline.cache import ArtifactCache, InMemoryArtifactCache
from frontline.cache.redis import RedisArtifactCache
from frontline.config.settings import Settings
from frontline.conversation.store import SessionStore
from frontline.conversation.stores.inmemory import InMemorySessionStore
from frontline.conversation.stores.redis import RedisSessionStore
from frontline.intake.extractor import IntentExtractor
from frontline.observability.logging import get_logger
from frontline.orchestration import (
    IntakeStage,
    LLMResponseGenerator,
    PolicyStage,
    PooledResponseGenerator,
    ResponseGenerator,
    ResponseStage,
    TriageStage,
    TurnOrchestrator,
)
from frontline.policy.compiler import PolicyCompiler
from frontline.policy.engine import PolicyEngine
from frontline.policy.side_effects import SideEffectDispatcher, SideEffectSink
from frontline.policy.store import PolicyStore
from frontline.policy.stores.inmemory import InMemoryPolicyStore
from frontline.providers.llm import MockLLMProvider, create_executor_from_step_config
from frontline.service import CallTurnService
from frontline.triage.authoring import RuleAuthoringService
from frontline.triage.compiler import RuleCompiler
from frontline.triage.matcher import TriageMatcher
from frontline.triage.store import RuleStore
from frontline.triage.stores.inmemory import InMemoryRuleStore

logger = get_logger(__name__)


@dataclass
class Runtime:
    """Every long-lived collaborator of a running service."""

    settings: Settings
    cache: ArtifactCache
    session_store: SessionStore
    rule_store: RuleStore
    policy_store: PolicyStore
    rule_compiler: RuleCompiler
    policy_compiler: PolicyCompiler
    authoring: RuleAuthoringService
    dispatcher: SideEffectDispatcher
    orchestrator: TurnOrchestrator
    service: CallTurnService
    redis_client: redis.Redis | None = None

    async def close(self) -> None:
        await self.dispatcher.drain()
        if self.redis_client is not None:
            await self.redis_client.aclose()


def create_runtime(
    settings: Settings,
    *,
    rule_store: RuleStore | None = None,
    policy_store: PolicyStore | None = None,
    redis_client: redis.Redis | None = None,
    side_effect_sink: SideEffectSink | None = None,
    mock_provider: MockLLMProvider | None = None,
) -> Runtime:
    """Build the turn service and its collaborators.

    Rule and policy stores default to in-memory ones; the administrative
    layer that owns the real documents passes its own.
    """
    storage = settings.storage
    needs_redis = "redis" in (storage.cache_backend, storage.session_backend)
    if needs_redis and redis_client is None:
        redis_client = redis.from_url(storage.redis_url)
        logger.info("redis_client_created", url=storage.redis_url.split("@")[-1])

    cache: ArtifactCache
    if storage.cache_backend == "redis":
        cache = RedisArtifactCache(redis_client)
    else:
        cache = InMemoryArtifactCache()

    session_store: SessionStore
    if storage.session_backend == "redis":
        session_store = RedisSessionStore(redis_client, storage)
    else:
        session_store = InMemorySessionStore()

    rule_store = rule_store or InMemoryRuleStore()
    policy_store = policy_store or InMemoryPolicyStore()

    rule_compiler = RuleCompiler(rule_store, cache, settings.triage)
    policy_compiler = PolicyCompiler(policy_store, cache, settings.policy)
    dispatcher = SideEffectDispatcher(side_effect_sink)

    pipeline = settings.pipeline
    response_generator: ResponseGenerator = LLMResponseGenerator(
        create_executor_from_step_config(pipeline.response, "response", mock_provider),
        pipeline.response,
    )
    if pipeline.response.use_response_pools:
        response_generator = PooledResponseGenerator(rule_compiler, response_generator)

    intake_executor = create_executor_from_step_config(pipeline.intake, "intake", mock_provider)
    stages = [
        IntakeStage(IntentExtractor(intake_executor, pipeline.intake)),
        TriageStage(
            rule_compiler,
            TriageMatcher(),
            settings.edge_cases,
            unclassified_confidence=pipeline.unclassified_confidence,
        ),
        ResponseStage(response_generator),
        PolicyStage(policy_compiler, PolicyEngine(settings.policy), dispatcher),
    ]

    orchestrator = TurnOrchestrator(stages)
    service = CallTurnService(
        session_store,
        orchestrator,
        pipeline,
        settings.edge_cases,
        handoff_message=settings.policy.handoff_message,
    )

    logger.info(
        "runtime_created",
        cache_backend=storage.cache_backend,
        session_backend=storage.session_backend,
        stages=orchestrator.stage_names,
    )
    return Runtime(
        settings=settings,
        cache=cache,
        session_store=session_store,
        rule_store=rule_store,
        policy_store=policy_store,
        rule_compiler=rule_compiler,
        policy_compiler=policy_compiler,
        authoring=RuleAuthoringService(rule_store, rule_compiler),
        dispatcher=dispatcher,
        orchestrator=orchestrator,
        service=service,
        redis_client=redis_client,
    )
