"""Tests for the built-in turn stages and response generators."""

import json
from collections.abc import Callable
from uuid import UUID

import pytest

from frontline.cache import InMemoryArtifactCache
from frontline.config.models.edge_cases import EdgeCaseConfig
from frontline.conversation.models import SessionState, TurnAction, TurnContext
from frontline.errors import RuleCompilationError
from frontline.intake import IntentExtractor
from frontline.orchestration import (
    IntakeStage,
    LLMResponseGenerator,
    PolicyStage,
    PooledResponseGenerator,
    ResponseGenerator,
    ResponseStage,
    TriageStage,
    resolve_rule_action,
)
from frontline.orchestration.stages import (
    END_CALL_MESSAGE,
    ESCALATE_MESSAGE,
    GENERATION_FAILED_MESSAGE,
    TAKE_MESSAGE_PROMPT,
)
from frontline.policy.compiler import PolicyCompiler
from frontline.policy.engine import PolicyEngine
from frontline.policy.models import PolicyDocument
from frontline.policy.side_effects import SideEffectDispatcher
from frontline.policy.stores.inmemory import InMemoryPolicyStore
from frontline.providers.llm import LLMExecutor, MockLLMProvider, ModelError, ProviderError
from frontline.triage.compiler import RuleCompiler
from frontline.triage.matcher import TriageMatcher
from frontline.triage.models import GeneratedRule, ManualRule, TriageCard
from frontline.triage.stores.inmemory import InMemoryRuleStore


class StaticGenerator(ResponseGenerator):
    def __init__(self, text: str = "How can I help?", error: Exception | None = None) -> None:
        self._text = text
        self._error = error
        self.calls = 0

    async def generate(self, ctx: TurnContext) -> str:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._text


class BrokenRuleStore(InMemoryRuleStore):
    async def list_cards(self, tenant_id: UUID) -> list[TriageCard]:
        raise ConnectionError("document store unreachable")


@pytest.fixture
def rule_store() -> InMemoryRuleStore:
    return InMemoryRuleStore()


@pytest.fixture
def rule_compiler(rule_store: InMemoryRuleStore) -> RuleCompiler:
    return RuleCompiler(rule_store, InMemoryArtifactCache())


@pytest.fixture
async def seeded_rules(rule_store: InMemoryRuleStore, tenant_id: UUID) -> InMemoryRuleStore:
    await rule_store.save_manual_rule(
        ManualRule(tenant_id=tenant_id, keywords=["billing"], action="TRANSFER_BILLING", priority=80)
    )
    await rule_store.save_manual_rule(
        ManualRule(tenant_id=tenant_id, keywords=["goodbye"], action="END_CALL_POLITE", priority=90)
    )
    await rule_store.save_card(
        TriageCard(
            tenant_id=tenant_id,
            category_slug="hvac",
            is_active=True,
            rules=[GeneratedRule(keywords=["furnace"], action="EXPLAIN_AND_PUSH", service_type="repair")],
            responses=["We can get a technician out to look at that.", "Let's get that furnace fixed."],
        )
    )
    return rule_store


@pytest.mark.parametrize(
    ("action", "expected"),
    [
        ("ESCALATE_TO_HUMAN", (ESCALATE_MESSAGE, TurnAction.TRANSFER, "human")),
        ("TRANSFER_BILLING", ("Let me transfer you now. Please hold.", TurnAction.TRANSFER, "billing")),
        ("TAKE_MESSAGE", (TAKE_MESSAGE_PROMPT, TurnAction.RESPOND, None)),
        ("END_CALL_POLITE", (END_CALL_MESSAGE, TurnAction.HANGUP, None)),
    ],
)
def test_resolve_terminal_actions(action: str, expected: tuple) -> None:
    outcome = resolve_rule_action(action)

    assert outcome is not None
    assert (
        outcome["final_response"],
        outcome["final_action"],
        outcome.get("transfer_target"),
    ) == expected


@pytest.mark.parametrize("action", ["DIRECT_TO_CLASSIFIER", "EXPLAIN_AND_PUSH", "TRANSFER_"])
def test_resolve_non_terminal_actions(action: str) -> None:
    assert resolve_rule_action(action) is None


class TestIntakeStage:
    @pytest.fixture
    def mock(self) -> MockLLMProvider:
        return MockLLMProvider()

    @pytest.fixture
    def stage(self, mock: MockLLMProvider) -> IntakeStage:
        executor = LLMExecutor("mock/intake", max_retries=0, mock_provider=mock)
        return IntakeStage(IntentExtractor(executor), company_name="Acme")

    async def test_extraction_becomes_update(
        self,
        stage: IntakeStage,
        mock: MockLLMProvider,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        mock.queue_response(
            json.dumps({
                "cleaned_input": "question about my bill",
                "intent": "billing",
                "keywords": ["bill"],
                "entities": {"name": "Dana"},
                "confidence": 0.9,
            })
        )

        update = await stage.run(make_turn("uh question about my bill"), session)

        assert update is not None
        assert update["cleaned_input"] == "question about my bill"
        assert update["intent"] == "billing"
        assert update["intent_confidence"] == 0.9
        assert update["entities"] == {"name": "Dana"}
        assert update["audit"][0].event == "INTENT_EXTRACTED"
        assert "short_circuit" not in update

    async def test_short_circuit_request(
        self,
        stage: IntakeStage,
        mock: MockLLMProvider,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        mock.queue_response(
            json.dumps({
                "cleaned_input": "sorry wrong number",
                "intent": "wrong_number",
                "confidence": 0.95,
                "should_short_circuit": True,
                "short_circuit_response": "No problem, have a good day!",
            })
        )

        update = await stage.run(make_turn("sorry wrong number"), session)

        assert update is not None
        assert update["short_circuit"] is True
        assert update["final_response"] == "No problem, have a good day!"
        assert [entry.event for entry in update["audit"]] == ["INTENT_EXTRACTED", "SHORT_CIRCUIT"]

    async def test_model_failure_degrades(
        self,
        stage: IntakeStage,
        mock: MockLLMProvider,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        mock.queue_error(ModelError("unavailable"))

        update = await stage.run(make_turn("my furnace is loud"), session)

        assert update is not None
        assert update["cleaned_input"] == "my furnace is loud"
        assert update["intent"] is None
        assert update["audit"][0].event == "INTAKE_FALLBACK"

    async def test_silence_skipped(
        self, stage: IntakeStage, session: SessionState, make_turn: Callable[..., TurnContext]
    ) -> None:
        assert await stage.run(make_turn("  "), session) is None


class TestTriageStage:
    @pytest.fixture
    def stage(self, rule_compiler: RuleCompiler) -> TriageStage:
        return TriageStage(rule_compiler, TriageMatcher(), EdgeCaseConfig())

    async def test_terminal_rule_short_circuits(
        self,
        stage: TriageStage,
        seeded_rules: InMemoryRuleStore,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        session.consecutive_unknown = 1

        update = await stage.run(make_turn("I have a question about billing"), session)

        assert update["final_action"] == TurnAction.TRANSFER
        assert update["transfer_target"] == "billing"
        assert update["short_circuit"] is True
        assert update["classification"].action == "TRANSFER_BILLING"
        assert update["audit"][0].event == "RULE_MATCHED"
        assert session.consecutive_unknown == 0

    async def test_non_terminal_rule_continues(
        self,
        stage: TriageStage,
        seeded_rules: InMemoryRuleStore,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        update = await stage.run(make_turn("the furnace is banging"), session)

        assert update["classification"].rule.category_slug == "hvac"
        assert "final_response" not in update
        assert "short_circuit" not in update

    async def test_extracted_keywords_count_as_evidence(
        self,
        stage: TriageStage,
        seeded_rules: InMemoryRuleStore,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        ctx = make_turn("it's making a weird noise", extracted_keywords=["furnace", "noise"])

        update = await stage.run(ctx, session)

        assert update["classification"].action == "EXPLAIN_AND_PUSH"
        assert update["audit"][0].detail["matched_keywords"] == ["furnace"]

    async def test_unknown_loop(
        self,
        stage: TriageStage,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        updates = [await stage.run(make_turn("blah blah"), session) for _ in range(3)]

        assert [u["final_action"] for u in updates] == [
            TurnAction.RESPOND,
            TurnAction.RESPOND,
            TurnAction.TRANSFER,
        ]
        assert [u["audit"][-1].event for u in updates] == [
            "CLARIFICATION",
            "CLARIFICATION",
            "UNKNOWN_ESCALATED",
        ]
        assert updates[2]["transfer_target"] == "human"
        assert all(u["short_circuit"] for u in updates)

    async def test_confident_intent_on_catch_all_is_classified(
        self,
        stage: TriageStage,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        ctx = make_turn("how much is a tune up", intent="pricing", intent_confidence=0.8)

        update = await stage.run(ctx, session)

        assert update["classification"].is_fallback is True
        assert "short_circuit" not in update
        assert session.consecutive_unknown == 0

    async def test_low_confidence_intent_is_unclassified(
        self,
        stage: TriageStage,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        ctx = make_turn("hmm", intent="pricing", intent_confidence=0.3)

        update = await stage.run(ctx, session)

        assert update["audit"][-1].event == "CLARIFICATION"

    async def test_silence_escalates_to_hangup(
        self,
        stage: TriageStage,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        updates = [await stage.run(make_turn(""), session) for _ in range(3)]

        assert [u["final_action"] for u in updates] == [
            TurnAction.RESPOND,
            TurnAction.RESPOND,
            TurnAction.HANGUP,
        ]
        assert updates[0]["audit"][0].event == "SILENCE"
        assert session.consecutive_silence == 3

    async def test_speech_resets_silence(
        self,
        stage: TriageStage,
        seeded_rules: InMemoryRuleStore,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
    ) -> None:
        await stage.run(make_turn(""), session)

        await stage.run(make_turn("billing please"), session)

        assert session.consecutive_silence == 0

    async def test_store_failure_is_fatal(
        self, session: SessionState, make_turn: Callable[..., TurnContext]
    ) -> None:
        compiler = RuleCompiler(BrokenRuleStore(), InMemoryArtifactCache())
        stage = TriageStage(compiler, TriageMatcher())

        with pytest.raises(RuleCompilationError):
            await stage.run(make_turn("billing"), session)


class TestResponseStage:
    async def test_proposes_response(
        self, session: SessionState, make_turn: Callable[..., TurnContext]
    ) -> None:
        stage = ResponseStage(StaticGenerator("We can help with that."))

        update = await stage.run(make_turn("hi"), session)

        assert update["proposed_response"] == "We can help with that."
        assert [entry.event for entry in update["audit"]] == ["RESPONSE_PROPOSED"]
        assert "final_response" not in update

    async def test_existing_proposal_kept(
        self, session: SessionState, make_turn: Callable[..., TurnContext]
    ) -> None:
        generator = StaticGenerator()
        stage = ResponseStage(generator)

        assert await stage.run(make_turn("hi", proposed_response="Already set."), session) is None
        assert generator.calls == 0

    async def test_generation_failure_transfers(
        self, session: SessionState, make_turn: Callable[..., TurnContext]
    ) -> None:
        stage = ResponseStage(StaticGenerator(error=ProviderError("all models failed")))

        update = await stage.run(make_turn("hi"), session)

        assert update["final_response"] == GENERATION_FAILED_MESSAGE
        assert update["final_action"] == TurnAction.TRANSFER
        assert update["transfer_target"] == "human"
        assert update["short_circuit"] is True


class TestResponseGenerators:
    async def test_llm_generator_prompt(self, make_turn: Callable[..., TurnContext]) -> None:
        mock = MockLLMProvider(responses=["  Sure, what's your address?  "])
        generator = LLMResponseGenerator(LLMExecutor("mock/response", mock_provider=mock))
        ctx = make_turn("furnace is loud", intent="repair", entities={"name": "Dana"})

        text = await generator.generate(ctx)

        assert text == "Sure, what's your address?"
        prompt = mock.calls[0]["messages"][1].content
        assert 'Caller said: "furnace is loud"' in prompt
        assert "Intent: repair" in prompt
        assert "Known caller details: name=Dana" in prompt

    async def test_llm_generator_rejects_empty_output(
        self, make_turn: Callable[..., TurnContext]
    ) -> None:
        mock = MockLLMProvider(responses=["   "])
        generator = LLMResponseGenerator(LLMExecutor("mock/response", mock_provider=mock))

        with pytest.raises(ModelError):
            await generator.generate(make_turn("hi"))

    async def test_pool_rotates_with_turn_number(
        self,
        rule_compiler: RuleCompiler,
        seeded_rules: InMemoryRuleStore,
        make_turn: Callable[..., TurnContext],
        tenant_id: UUID,
    ) -> None:
        fallback = StaticGenerator()
        generator = PooledResponseGenerator(rule_compiler, fallback)
        rule_set = await rule_compiler.compile(tenant_id)
        match = TriageMatcher().match("my furnace", rule_set)

        first = await generator.generate(make_turn("my furnace", turn_number=1, classification=match))
        second = await generator.generate(make_turn("my furnace", turn_number=2, classification=match))
        third = await generator.generate(make_turn("my furnace", turn_number=3, classification=match))

        assert first == "We can get a technician out to look at that."
        assert second == "Let's get that furnace fixed."
        assert third == first
        assert fallback.calls == 0

    async def test_pool_falls_back_without_category(
        self,
        rule_compiler: RuleCompiler,
        seeded_rules: InMemoryRuleStore,
        make_turn: Callable[..., TurnContext],
        tenant_id: UUID,
    ) -> None:
        fallback = StaticGenerator("Generated.")
        generator = PooledResponseGenerator(rule_compiler, fallback)
        match = TriageMatcher().match("hello", await rule_compiler.compile(tenant_id))

        text = await generator.generate(make_turn("hello", classification=match))

        assert text == "Generated."
        assert fallback.calls == 1


class TestPolicyStage:
    @pytest.fixture
    def policy_store(self) -> InMemoryPolicyStore:
        return InMemoryPolicyStore()

    @pytest.fixture
    def dispatcher(self) -> SideEffectDispatcher:
        return SideEffectDispatcher()

    @pytest.fixture
    def stage(
        self, policy_store: InMemoryPolicyStore, dispatcher: SideEffectDispatcher
    ) -> PolicyStage:
        compiler = PolicyCompiler(policy_store, InMemoryArtifactCache())
        return PolicyStage(compiler, PolicyEngine(), dispatcher)

    async def test_nothing_proposed(
        self, stage: PolicyStage, session: SessionState, make_turn: Callable[..., TurnContext]
    ) -> None:
        assert await stage.run(make_turn("hi"), session) is None

    async def test_without_policy_passes_proposal_through(
        self, stage: PolicyStage, session: SessionState, make_turn: Callable[..., TurnContext]
    ) -> None:
        update = await stage.run(make_turn("hi", proposed_response="It's $90."), session)

        assert update["final_response"] == "It's $90."
        assert update["final_action"] == TurnAction.RESPOND
        assert update["audit"][0].event == "POLICY_NOT_CONFIGURED"

    async def test_applies_policy_and_dispatches_side_effects(
        self,
        stage: PolicyStage,
        policy_store: InMemoryPolicyStore,
        dispatcher: SideEffectDispatcher,
        session: SessionState,
        make_turn: Callable[..., TurnContext],
        tenant_id: UUID,
    ) -> None:
        await policy_store.save_document(
            PolicyDocument(
                tenant_id=tenant_id,
                edge_cases=[
                    {
                        "name": "vip_caller",
                        "match": {"keywords_any": ["platinum member"]},
                        "action": {"kind": "flag_only"},
                        "side_effects": {"auto_tags": ["vip"]},
                    }
                ],
                guardrails=["NO_PRICES"],
            )
        )
        ctx = make_turn("I'm a platinum member", proposed_response="A visit is $90.")

        update = await stage.run(ctx, session)
        await dispatcher.drain()

        assert update["final_response"] == "A visit is [contact us for pricing]."
        assert update["final_action"] == TurnAction.RESPOND
        assert update["short_circuit"] is False
        assert update["side_effects"] == ["tag:vip"]
        assert [entry.event for entry in update["audit"]] == [
            "vip_caller",
            "NO_PRICES",
            "POLICY_APPLIED",
        ]
        assert update["audit"][-1].detail["failed"] is False
