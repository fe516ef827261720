"""Policy engine: the fixed four-stage precedence chain.

    edge case -> transfer authorization -> guardrails -> behavior

Edge cases and authorized transfers end the chain. Guardrails and behavior
transforms only rewrite text. The whole evaluation is contained: any
internal error returns the proposed response untouched with a failure
marker in the audit trail.
"""

import time
from collections.abc import Callable
from datetime import datetime

from frontline.config.models.policy import PolicyConfig
from frontline.conversation.models import TurnAction, TurnContext
from frontline.observability.logging import get_logger
from frontline.observability.metrics import (
    POLICY_BUDGET_OVERRUNS,
    POLICY_LATENCY,
    SECURITY_VIOLATIONS,
)
from frontline.policy.behavior import apply_behavior
from frontline.policy.guardrails import apply_guardrails
from frontline.policy.models import (
    AppliedStage,
    CompiledEdgeCase,
    EdgeCaseActionKind,
    PolicyResult,
    PolicyStage,
    SideEffect,
)
from frontline.policy.patterns import first_hit
from frontline.policy.runtime import Policy

logger = get_logger(__name__)

TRANSFER_BLOCKED = "TRANSFER_BLOCKED"
POLICY_FAILED = "POLICY_FAILED"

DEFAULT_TRANSFER_MESSAGE = "Let me transfer you now. Please hold."
DEFAULT_HANGUP_MESSAGE = "Thank you for calling. Goodbye."


class PolicyEngine:
    """Applies a tenant Policy to a proposed response.

    Evaluation is CPU-only. Latency is measured against a soft budget: an
    overrun is logged, a larger overrun raises an alert, and the computed
    result is returned either way.
    """

    def __init__(
        self,
        config: PolicyConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config or PolicyConfig()
        self._clock = clock or datetime.now

    def apply(
        self,
        proposed_response: str,
        utterance: str,
        turn: TurnContext,
        policy: Policy,
    ) -> PolicyResult:
        """Run the precedence chain. Never raises."""
        started = time.perf_counter()
        try:
            result = self._evaluate(proposed_response, utterance, turn, policy)
        except Exception as e:  # noqa: BLE001
            logger.error(
                "policy_apply_failed",
                tenant_id=str(turn.tenant_id),
                call_id=turn.call_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            result = PolicyResult(
                response=proposed_response,
                action=TurnAction.RESPOND,
                applied_stages=[
                    AppliedStage(
                        stage=PolicyStage.FAILSAFE,
                        name=POLICY_FAILED,
                        detail=type(e).__name__,
                    )
                ],
                failed=True,
            )

        result.elapsed_ms = (time.perf_counter() - started) * 1000
        self._check_budget(result, turn)
        return result

    def _evaluate(
        self,
        proposed_response: str,
        utterance: str,
        turn: TurnContext,
        policy: Policy,
    ) -> PolicyResult:
        result = PolicyResult(response=proposed_response)

        if self._edge_case_stage(utterance, turn, policy, result):
            return result
        if self._transfer_stage(utterance, turn, policy, result):
            return result

        result.response, fired = apply_guardrails(result.response, policy)
        for flag in fired:
            result.guardrails_fired.append(flag)
            result.applied_stages.append(AppliedStage(stage=PolicyStage.GUARDRAILS, name=flag.value))

        result.response, polished = apply_behavior(result.response, policy, turn)
        for flag in polished:
            result.applied_stages.append(AppliedStage(stage=PolicyStage.BEHAVIOR, name=flag.value))

        return result

    def _edge_case_stage(
        self,
        utterance: str,
        turn: TurnContext,
        policy: Policy,
        result: PolicyResult,
    ) -> bool:
        spam_score = turn.signals.get("spam_score", 0.0)
        for edge_case, matchers in policy.edge_cases:
            if edge_case.min_spam_score is not None and spam_score < edge_case.min_spam_score:
                continue
            if matchers:
                evidence = first_hit(matchers, utterance)
                if evidence is None:
                    continue
            elif edge_case.min_spam_score is None:
                continue
            else:
                evidence = f"spam_score={spam_score:.2f}"

            result.side_effects.extend(_side_effects(edge_case))
            self._log_edge_case(edge_case, evidence, turn)

            action = edge_case.action
            if action.kind == EdgeCaseActionKind.FLAG_ONLY:
                result.applied_stages.append(
                    AppliedStage(stage=PolicyStage.EDGE_CASE, name=edge_case.name, detail=evidence)
                )
                return False

            if action.kind == EdgeCaseActionKind.OVERRIDE_RESPONSE:
                result.response = action.response or result.response
            elif action.kind == EdgeCaseActionKind.FORCE_TRANSFER:
                result.action = TurnAction.TRANSFER
                result.transfer_target = action.transfer_target
                result.response = action.transfer_message or DEFAULT_TRANSFER_MESSAGE
            elif action.kind == EdgeCaseActionKind.POLITE_HANGUP:
                result.action = TurnAction.HANGUP
                result.response = action.hangup_message or DEFAULT_HANGUP_MESSAGE

            result.short_circuited = True
            result.applied_stages.append(
                AppliedStage(
                    stage=PolicyStage.EDGE_CASE,
                    name=edge_case.name,
                    terminal=True,
                    detail=evidence,
                )
            )
            return True
        return False

    def _transfer_stage(
        self,
        utterance: str,
        turn: TurnContext,
        policy: Policy,
        result: PolicyResult,
    ) -> bool:
        for rule, matchers in policy.transfer_rules:
            if rule.after_hours_only and self._within_business_hours():
                continue
            evidence = first_hit(matchers, utterance)
            if evidence is None:
                continue

            if rule.action_tag not in policy.allowed_actions:
                SECURITY_VIOLATIONS.labels(
                    tenant_id=str(turn.tenant_id), violation=TRANSFER_BLOCKED
                ).inc()
                logger.warning(
                    "transfer_blocked",
                    security_violation=True,
                    tenant_id=str(turn.tenant_id),
                    call_id=turn.call_id,
                    action_tag=rule.action_tag,
                    allowed_actions=sorted(policy.allowed_actions),
                )
                result.response = policy.handoff_message
                result.applied_stages.append(
                    AppliedStage(
                        stage=PolicyStage.TRANSFER,
                        name=TRANSFER_BLOCKED,
                        detail=rule.action_tag,
                    )
                )
                return False

            result.action = TurnAction.TRANSFER
            result.transfer_target = rule.target
            result.response = rule.message or DEFAULT_TRANSFER_MESSAGE
            result.short_circuited = True
            result.applied_stages.append(
                AppliedStage(
                    stage=PolicyStage.TRANSFER,
                    name=rule.action_tag,
                    terminal=True,
                    detail=evidence,
                )
            )
            return True
        return False

    def _within_business_hours(self) -> bool:
        hour = self._clock().hour
        return self._config.business_hours_start <= hour < self._config.business_hours_end

    def _check_budget(self, result: PolicyResult, turn: TurnContext) -> None:
        tenant = str(turn.tenant_id)
        POLICY_LATENCY.labels(tenant_id=tenant).observe(result.elapsed_ms / 1000)
        if result.elapsed_ms <= self._config.budget_ms:
            return

        if result.elapsed_ms > self._config.alert_ms:
            POLICY_BUDGET_OVERRUNS.labels(tenant_id=tenant, severity="alert").inc()
            logger.error(
                "policy_budget_alert",
                tenant_id=tenant,
                call_id=turn.call_id,
                elapsed_ms=round(result.elapsed_ms, 3),
                alert_ms=self._config.alert_ms,
            )
        else:
            POLICY_BUDGET_OVERRUNS.labels(tenant_id=tenant, severity="warning").inc()
            logger.warning(
                "policy_budget_exceeded",
                tenant_id=tenant,
                call_id=turn.call_id,
                elapsed_ms=round(result.elapsed_ms, 3),
                budget_ms=self._config.budget_ms,
            )

    @staticmethod
    def _log_edge_case(edge_case: CompiledEdgeCase, evidence: str, turn: TurnContext) -> None:
        log = {
            "info": logger.info,
            "warning": logger.warning,
            "error": logger.error,
        }[edge_case.side_effects.log_severity]
        log(
            "edge_case_matched",
            edge_case=edge_case.name,
            kind=edge_case.action.kind.value,
            evidence=evidence,
            call_id=turn.call_id,
        )


def _side_effects(edge_case: CompiledEdgeCase) -> list[SideEffect]:
    effects = [
        SideEffect(kind="tag", edge_case=edge_case.name, value=tag)
        for tag in edge_case.side_effects.auto_tags
    ]
    if edge_case.side_effects.auto_blacklist:
        effects.append(SideEffect(kind="blacklist", edge_case=edge_case.name))
    effects.extend(
        SideEffect(kind="notify", edge_case=edge_case.name, value=contact)
        for contact in edge_case.side_effects.notify_contacts
    )
    return effects
