"""Built-in turn stages: intake, triage, response and policy."""

from collections.abc import Mapping
from typing import Any

from frontline.config.models.edge_cases import EdgeCaseConfig
from frontline.conversation.edge_cases import (
    record_classified,
    record_silence,
    record_speech,
    record_unclassified,
)
from frontline.conversation.models import AuditEntry, SessionState, TurnAction, TurnContext
from frontline.intake.extractor import IntentExtractor
from frontline.observability.logging import get_logger
from frontline.orchestration.responses import ResponseGenerator
from frontline.orchestration.stage import TurnStage
from frontline.policy.compiler import PolicyCompiler
from frontline.policy.engine import PolicyEngine
from frontline.policy.side_effects import SideEffectDispatcher
from frontline.providers.llm import ProviderError
from frontline.triage.compiler import RuleCompiler
from frontline.triage.matcher import TriageMatcher
from frontline.triage.models import MatchResult, RuleAction
from frontline.triage.models.enums import TRANSFER_ACTION_PREFIX

logger = get_logger(__name__)

ESCALATE_MESSAGE = (
    "I understand. Let me transfer you to someone who can assist with that right away. "
    "Please hold."
)
TAKE_MESSAGE_PROMPT = (
    "I'd be happy to take a message. Could you please provide your name and phone number, "
    "and I'll make sure someone gets back to you?"
)
END_CALL_MESSAGE = "Thank you for calling. Have a great day!"
TRANSFER_MESSAGE = "Let me transfer you now. Please hold."
GENERATION_FAILED_MESSAGE = (
    "I'm not sure how to help with that. Let me transfer you to someone who can assist."
)
HUMAN_TARGET = "human"


def resolve_rule_action(action: str) -> dict[str, Any] | None:
    """Map a terminal rule action to a turn outcome.

    Returns None for actions that continue to response generation.
    """
    if action == RuleAction.ESCALATE_TO_HUMAN:
        return {
            "final_response": ESCALATE_MESSAGE,
            "final_action": TurnAction.TRANSFER,
            "transfer_target": HUMAN_TARGET,
        }
    if action.startswith(TRANSFER_ACTION_PREFIX) and len(action) > len(TRANSFER_ACTION_PREFIX):
        return {
            "final_response": TRANSFER_MESSAGE,
            "final_action": TurnAction.TRANSFER,
            "transfer_target": action[len(TRANSFER_ACTION_PREFIX):].lower(),
        }
    if action == RuleAction.TAKE_MESSAGE:
        return {"final_response": TAKE_MESSAGE_PROMPT, "final_action": TurnAction.RESPOND}
    if action == RuleAction.END_CALL_POLITE:
        return {"final_response": END_CALL_MESSAGE, "final_action": TurnAction.HANGUP}
    return None


class IntakeStage(TurnStage):
    """Reads the utterance with the intake model."""

    name = "intake"

    def __init__(self, extractor: IntentExtractor, *, company_name: str | None = None) -> None:
        self._extractor = extractor
        self._company_name = company_name

    async def run(self, ctx: TurnContext, session: SessionState) -> Mapping[str, Any] | None:
        if not ctx.raw_input.strip():
            return None

        result = await self._extractor.extract(ctx.raw_input, company_name=self._company_name)
        extraction = result.extraction
        update: dict[str, Any] = {
            "cleaned_input": extraction.cleaned_input,
            "intent": extraction.intent,
            "intent_confidence": extraction.confidence,
            "extracted_keywords": list(extraction.keywords),
            "entities": extraction.entity_strings(),
            "audit": [
                AuditEntry(
                    stage=self.name,
                    event="INTAKE_FALLBACK" if result.fallback else "INTENT_EXTRACTED",
                    detail={
                        "intent": extraction.intent,
                        "confidence": extraction.confidence,
                        "urgency": extraction.urgency,
                        "cost_usd": result.cost_usd,
                    },
                )
            ],
        }
        if extraction.should_short_circuit and extraction.short_circuit_response:
            update["final_response"] = extraction.short_circuit_response
            update["final_action"] = TurnAction.RESPOND
            update["short_circuit"] = True
            update["audit"].append(AuditEntry(stage=self.name, event="SHORT_CIRCUIT"))
        return update


class TriageStage(TurnStage):
    """Silence handling, rule matching and the unknown loop."""

    name = "triage"

    def __init__(
        self,
        compiler: RuleCompiler,
        matcher: TriageMatcher,
        edge_config: EdgeCaseConfig | None = None,
        *,
        unclassified_confidence: float = 0.5,
    ) -> None:
        self._compiler = compiler
        self._matcher = matcher
        self._edge_config = edge_config or EdgeCaseConfig()
        self._unclassified_confidence = unclassified_confidence

    async def run(self, ctx: TurnContext, session: SessionState) -> Mapping[str, Any] | None:
        text = ctx.effective_input
        if not text.strip():
            silence = record_silence(session, self._edge_config)
            return {
                "final_response": silence.response,
                "final_action": TurnAction.HANGUP if silence.hangup else TurnAction.RESPOND,
                "short_circuit": True,
                "audit": [
                    AuditEntry(
                        stage=self.name,
                        event="SILENCE",
                        detail={"silence_count": silence.silence_count, "hangup": silence.hangup},
                    )
                ],
            }
        record_speech(session)

        # Compilation and no-match failures are fatal and reach the orchestrator
        rule_set = await self._compiler.compile(ctx.tenant_id)
        match = self._matcher.match(text, rule_set, ctx.extracted_keywords)

        update: dict[str, Any] = {
            "classification": match,
            "audit": [
                AuditEntry(
                    stage=self.name,
                    event="RULE_MATCHED",
                    detail={
                        "rule_id": match.rule.rule_id,
                        "action": match.action,
                        "is_fallback": match.is_fallback,
                        "matched_keywords": [kw.keyword for kw in match.matched_keywords],
                        "rules_evaluated": match.rules_evaluated,
                    },
                )
            ],
        }

        if self._is_unclassified(match, ctx):
            decision = record_unclassified(session, self._edge_config)
            update["final_response"] = decision.response
            update["short_circuit"] = True
            if decision.escalate:
                update["final_action"] = TurnAction.TRANSFER
                update["transfer_target"] = HUMAN_TARGET
            else:
                update["final_action"] = TurnAction.RESPOND
            update["audit"].append(
                AuditEntry(
                    stage=self.name,
                    event="UNKNOWN_ESCALATED" if decision.escalate else "CLARIFICATION",
                    detail={"attempt": decision.attempt},
                )
            )
            return update

        record_classified(session)
        outcome = resolve_rule_action(match.action)
        if outcome is not None:
            update.update(outcome)
            update["short_circuit"] = True
        return update

    def _is_unclassified(self, match: MatchResult, ctx: TurnContext) -> bool:
        if not match.is_fallback:
            return False
        if ctx.intent is None:
            return True
        return (ctx.intent_confidence or 0.0) < self._unclassified_confidence


class ResponseStage(TurnStage):
    """Proposes response text when no earlier stage has one."""

    name = "response"

    def __init__(self, generator: ResponseGenerator) -> None:
        self._generator = generator

    async def run(self, ctx: TurnContext, session: SessionState) -> Mapping[str, Any] | None:
        if ctx.proposed_response:
            return None
        try:
            text = await self._generator.generate(ctx)
        except ProviderError as e:
            logger.warning("response_generation_failed", error=str(e), error_type=type(e).__name__)
            return {
                "final_response": GENERATION_FAILED_MESSAGE,
                "final_action": TurnAction.TRANSFER,
                "transfer_target": HUMAN_TARGET,
                "short_circuit": True,
                "audit": [
                    AuditEntry(
                        stage=self.name,
                        event="GENERATION_FAILED",
                        detail={"error_type": type(e).__name__},
                    )
                ],
            }
        return {
            "proposed_response": text,
            "audit": [AuditEntry(stage=self.name, event="RESPONSE_PROPOSED")],
        }


class PolicyStage(TurnStage):
    """Loads the tenant policy and runs the precedence chain."""

    name = "policy"

    def __init__(
        self,
        compiler: PolicyCompiler,
        engine: PolicyEngine,
        dispatcher: SideEffectDispatcher,
    ) -> None:
        self._compiler = compiler
        self._engine = engine
        self._dispatcher = dispatcher

    async def run(self, ctx: TurnContext, session: SessionState) -> Mapping[str, Any] | None:
        proposed = ctx.proposed_response
        if not proposed:
            return None

        policy = await self._compiler.load_active(ctx.tenant_id)
        if policy is None:
            return {
                "final_response": proposed,
                "final_action": TurnAction.RESPOND,
                "audit": [AuditEntry(stage=self.name, event="POLICY_NOT_CONFIGURED")],
            }

        result = self._engine.apply(proposed, ctx.raw_input, ctx, policy)
        labels = self._dispatcher.dispatch(
            result.side_effects,
            tenant_id=str(ctx.tenant_id),
            call_id=ctx.call_id,
        )

        audit = [
            AuditEntry(
                stage=self.name,
                event=applied.name,
                detail={
                    "policy_stage": applied.stage.value,
                    "terminal": applied.terminal,
                    "detail": applied.detail,
                },
            )
            for applied in result.applied_stages
        ]
        audit.append(
            AuditEntry(
                stage=self.name,
                event="POLICY_APPLIED",
                detail={
                    "checksum": policy.checksum[:12],
                    "elapsed_ms": round(result.elapsed_ms, 3),
                    "failed": result.failed,
                },
            )
        )
        return {
            "final_response": result.response,
            "final_action": result.action,
            "transfer_target": result.transfer_target,
            "short_circuit": result.short_circuited,
            "side_effects": labels,
            "audit": audit,
        }
