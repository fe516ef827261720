"""Tests for TurnOrchestrator."""

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest
from prometheus_client import REGISTRY

from frontline.config.models.pipeline import StageConfig
from frontline.conversation.models import SessionState, TurnAction, TurnContext
from frontline.errors import TriageNoMatchError
from frontline.orchestration import TurnOrchestrator, TurnStage
from frontline.orchestration.orchestrator import SAFE_DEFAULT_MESSAGE
from frontline.triage.models import FallbackRule, MatchResult


class ScriptedStage(TurnStage):
    """Returns a fixed update, or raises, and records what it saw."""

    def __init__(
        self,
        name: str,
        update: Mapping[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self._update = update
        self._error = error
        self.seen: list[TurnContext] = []

    async def run(self, ctx: TurnContext, session: SessionState) -> Mapping[str, Any] | None:
        self.seen.append(ctx.model_copy(deep=True))
        if self._error is not None:
            raise self._error
        return self._update


def pipeline(*names: str, disabled: tuple[str, ...] = ()) -> list[StageConfig]:
    return [StageConfig(name=name, enabled=name not in disabled) for name in names]


def fallback_match() -> MatchResult:
    return MatchResult(rule=FallbackRule(action="DIRECT_TO_CLASSIFIER").to_rule(), rules_evaluated=1)


class TestStageSequencing:
    """Stages run in configured order with their updates merged."""

    async def test_runs_stages_in_order(self, session: SessionState) -> None:
        first = ScriptedStage("first", {"intent": "repair"})
        second = ScriptedStage("second", {"proposed_response": "We can help."})
        orchestrator = TurnOrchestrator([second, first])

        ctx = await orchestrator.run_turn("furnace", session, pipeline("first", "second"))

        assert second.seen[0].intent == "repair"
        assert ctx.proposed_response == "We can help."
        assert orchestrator.stage_names == ["second", "first"]

    async def test_disabled_stage_skipped(self, session: SessionState) -> None:
        skipped = ScriptedStage("response", {"proposed_response": "nope"})
        orchestrator = TurnOrchestrator([skipped])

        ctx = await orchestrator.run_turn("hi", session, pipeline("response", disabled=("response",)))

        assert skipped.seen == []
        assert ctx.proposed_response is None

    async def test_unregistered_stage_skipped(self, session: SessionState) -> None:
        known = ScriptedStage("known", {"intent": "billing"})
        orchestrator = TurnOrchestrator([known])

        ctx = await orchestrator.run_turn("hi", session, pipeline("missing", "known"))

        assert ctx.intent == "billing"

    async def test_short_circuit_stops_pipeline(self, session: SessionState) -> None:
        stopper = ScriptedStage(
            "triage",
            {"final_response": "Goodbye.", "final_action": TurnAction.HANGUP, "short_circuit": True},
        )
        later = ScriptedStage("response", {"proposed_response": "unused"})
        orchestrator = TurnOrchestrator([stopper, later])

        ctx = await orchestrator.run_turn("bye", session, pipeline("triage", "response"))

        assert later.seen == []
        assert ctx.final_action == TurnAction.HANGUP
        assert ctx.proposed_response is None

    async def test_signals_passed_to_context(self, session: SessionState) -> None:
        stage = ScriptedStage("policy")
        orchestrator = TurnOrchestrator([stage])

        await orchestrator.run_turn("hi", session, pipeline("policy"), signals={"spam_score": 0.7})

        assert stage.seen[0].signals == {"spam_score": 0.7}

    async def test_disallowed_fields_ignored(self, session: SessionState) -> None:
        stage = ScriptedStage("rogue", {"call_id": "other-call", "intent": "billing"})
        orchestrator = TurnOrchestrator([stage])

        ctx = await orchestrator.run_turn("hi", session, pipeline("rogue"))

        assert ctx.call_id == session.call_id
        assert ctx.intent == "billing"


class TestStageFailures:
    async def test_failing_stage_is_a_no_op(self, session: SessionState) -> None:
        broken = ScriptedStage("intake", error=RuntimeError("boom"))
        later = ScriptedStage("response", {"proposed_response": "Still here."})
        orchestrator = TurnOrchestrator([broken, later])
        before = REGISTRY.get_sample_value("frontline_stage_failures_total", {"stage": "intake"}) or 0.0

        ctx = await orchestrator.run_turn("hi", session, pipeline("intake", "response"))

        assert ctx.proposed_response == "Still here."
        assert ctx.audit[0].stage == "intake"
        assert ctx.audit[0].event == "STAGE_FAILED"
        assert ctx.audit[0].detail == {"error_type": "RuntimeError"}
        after = REGISTRY.get_sample_value("frontline_stage_failures_total", {"stage": "intake"})
        assert after == before + 1

    async def test_invalid_update_is_a_no_op(self, session: SessionState) -> None:
        """A stage returning an invalid value must not leave partial changes behind."""
        bad = ScriptedStage("intake", {"intent": "repair", "final_action": "bogus"})
        later = ScriptedStage("response", {"proposed_response": "Still here."})
        orchestrator = TurnOrchestrator([bad, later])

        ctx = await orchestrator.run_turn("hi", session, pipeline("intake", "response"))

        assert ctx.intent is None
        assert ctx.final_action is None
        assert ctx.proposed_response == "Still here."
        assert ctx.audit[0].stage == "intake"
        assert ctx.audit[0].event == "STAGE_FAILED"
        assert ctx.audit[0].detail == {"error_type": "ValidationError"}

    async def test_fatal_error_applies_safe_default(self, session: SessionState) -> None:
        fatal = ScriptedStage("triage", error=TriageNoMatchError("catch-all missing"))
        later = ScriptedStage("response", {"proposed_response": "unused"})
        orchestrator = TurnOrchestrator([fatal, later])

        ctx = await orchestrator.run_turn("hi", session, pipeline("triage", "response"))

        assert later.seen == []
        assert ctx.final_response == SAFE_DEFAULT_MESSAGE
        assert ctx.final_action == TurnAction.TRANSFER
        assert ctx.transfer_target == "human"
        assert ctx.short_circuit is True
        assert ctx.audit[-1].event == "SAFE_DEFAULT"

    async def test_custom_safe_default_message(self, session: SessionState) -> None:
        fatal = ScriptedStage("triage", error=TriageNoMatchError("catch-all missing"))
        orchestrator = TurnOrchestrator([fatal], safe_default_message="One moment.")

        ctx = await orchestrator.run_turn("hi", session, pipeline("triage"))

        assert ctx.final_response == "One moment."

    async def test_cancellation_propagates(self, session: SessionState) -> None:
        cancelled = ScriptedStage("response", error=asyncio.CancelledError())
        orchestrator = TurnOrchestrator([cancelled])

        with pytest.raises(asyncio.CancelledError):
            await orchestrator.run_turn("hi", session, pipeline("response"))


class TestSessionBookkeeping:
    async def test_turn_numbers_advance(self, session: SessionState) -> None:
        orchestrator = TurnOrchestrator([ScriptedStage("noop")])

        first = await orchestrator.run_turn("one", session, pipeline("noop"))
        second = await orchestrator.run_turn("two", session, pipeline("noop"))

        assert (first.turn_number, second.turn_number) == (1, 2)
        assert session.turn_count == 2

    async def test_entities_and_decision_recorded(self, session: SessionState) -> None:
        session.collected_entities = {"name": "Dana"}
        stage = ScriptedStage(
            "triage",
            {"classification": fallback_match(), "entities": {"street_address": "12 Elm St"}},
        )
        orchestrator = TurnOrchestrator([stage])

        ctx = await orchestrator.run_turn("hi", session, pipeline("triage"))

        assert stage.seen[0].entities == {"name": "Dana"}
        assert ctx.entities == {"name": "Dana", "street_address": "12 Elm St"}
        assert session.collected_entities == {"name": "Dana", "street_address": "12 Elm St"}
        assert session.last_triage_decision == "DIRECT_TO_CLASSIFIER:system:fallback"
