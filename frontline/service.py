"""Call turn service: the entry point used by the telephony layer.

Owns session load/save around each turn, serializes turns of one call,
prepends queued barge-in fragments, and guarantees that every turn ends
with something to say.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from pydantic import BaseModel, Field

from frontline.config.models.edge_cases import EdgeCaseConfig
from frontline.config.models.pipeline import PipelineConfig
from frontline.conversation.edge_cases import (
    InterruptionDecision,
    InterruptionKind,
    drain_interruptions,
    handle_interruption,
)
from frontline.conversation.models import AuditEntry, SessionState, TurnAction, TurnContext
from frontline.conversation.store import SessionStore
from frontline.errors import FrontlineError
from frontline.models import utc_now
from frontline.observability.logging import bind_call_context, clear_call_context, get_logger
from frontline.observability.metrics import TURNS
from frontline.orchestration.orchestrator import TurnOrchestrator
from frontline.providers.llm import (
    ExecutionContext,
    clear_execution_context,
    set_execution_context,
)

logger = get_logger(__name__)

DEFAULT_HANDOFF_MESSAGE = "Let me connect you with someone who can help."


class CallNotFoundError(FrontlineError):
    """No session state exists for the call."""

    def __init__(self, call_id: str) -> None:
        self.call_id = call_id
        super().__init__(f"Call not found: {call_id}")


class TurnCancelledError(FrontlineError):
    """The turn was abandoned before it produced a response."""

    def __init__(self, call_id: str) -> None:
        self.call_id = call_id
        super().__init__(f"Turn cancelled for call {call_id}")


class TurnOutcome(BaseModel):
    """What the telephony layer should do after one caller utterance."""

    call_id: str
    turn_number: int
    response_text: str = Field(..., min_length=1)
    action: TurnAction
    transfer_target: str | None = None
    side_effects: list[str] = Field(default_factory=list)
    short_circuited: bool = False
    audit: list[AuditEntry] = Field(default_factory=list)


class CallTurnService:
    """Processes call turns against persisted session state."""

    def __init__(
        self,
        session_store: SessionStore,
        orchestrator: TurnOrchestrator,
        pipeline_config: PipelineConfig | None = None,
        edge_config: EdgeCaseConfig | None = None,
        *,
        handoff_message: str = DEFAULT_HANDOFF_MESSAGE,
    ) -> None:
        self._sessions = session_store
        self._orchestrator = orchestrator
        self._pipeline = pipeline_config or PipelineConfig()
        self._edge_config = edge_config or EdgeCaseConfig()
        self._handoff_message = handoff_message
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        # Fragments queued while a turn of the call holds or awaits the lock
        self._pending_fragments: dict[str, list[str]] = {}
        self._in_flight: dict[str, asyncio.Task[TurnContext]] = {}

    async def start_call(self, call_id: str, tenant_id: UUID) -> SessionState:
        """Create fresh session state for a new call.

        Starting a call that already exists returns its current state.
        """
        existing = await self._sessions.get(call_id)
        if existing is not None:
            return existing
        state = SessionState(call_id=call_id, tenant_id=tenant_id)
        await self._sessions.save(state)
        logger.info("call_started", call_id=call_id, tenant_id=str(tenant_id))
        return state

    async def process_turn(
        self,
        call_id: str,
        utterance: str,
        *,
        signals: dict[str, float] | None = None,
    ) -> TurnOutcome:
        """Run one utterance through the pipeline.

        Raises:
            CallNotFoundError: If the call was never started or has ended
            TurnCancelledError: If an urgent interruption or the call ending
                cancelled the turn
        """
        async with self._call_lock(call_id):
            try:
                session = await self._sessions.get(call_id)
            except Exception as e:  # noqa: BLE001
                logger.error("session_load_failed", call_id=call_id, error=str(e))
                return self._handoff_outcome(call_id, turn_number=1, reason=type(e).__name__)
            if session is None:
                raise CallNotFoundError(call_id)

            queued = drain_interruptions(session) + self._pending_fragments.pop(call_id, [])
            if queued:
                utterance = " ".join([*queued, utterance]).strip()

            bind_call_context(call_id, session.tenant_id, session.next_turn_number)
            set_execution_context(
                ExecutionContext(
                    tenant_id=session.tenant_id,
                    call_id=call_id,
                    turn_number=session.next_turn_number,
                )
            )
            task = asyncio.create_task(
                self._orchestrator.run_turn(
                    utterance,
                    session,
                    self._pipeline.stages,
                    signals=signals,
                ),
                name=f"turn:{call_id}:{session.next_turn_number}",
            )
            self._in_flight[call_id] = task
            try:
                ctx = await task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                raise TurnCancelledError(call_id) from None
            finally:
                self._in_flight.pop(call_id, None)
                clear_execution_context()
                clear_call_context()

            session.last_activity_at = utc_now()
            session.queued_interruptions.extend(self._pending_fragments.pop(call_id, []))
            await self._save(session)

        outcome = self._to_outcome(ctx)
        TURNS.labels(tenant_id=str(ctx.tenant_id), action=outcome.action.value).inc()
        return outcome

    async def handle_interruption(self, call_id: str, fragment: str) -> InterruptionDecision:
        """Classify barge-in speech; an urgent fragment cancels the turn in flight.

        Raises:
            CallNotFoundError: If the call was never started or has ended
        """
        session = await self._sessions.get(call_id)
        if session is None:
            raise CallNotFoundError(call_id)

        decision = handle_interruption(session, fragment, self._edge_config)
        if decision.kind == InterruptionKind.URGENT:
            self._cancel_in_flight(call_id)
        elif decision.kind == InterruptionKind.QUEUED:
            if call_id in self._lock_users:
                # The turn in progress saves its own copy of the session last
                self._pending_fragments.setdefault(call_id, []).append(decision.fragment)
            else:
                await self._save(session)
        return decision

    async def end_call(self, call_id: str) -> bool:
        """Cancel any turn in flight and discard the call's state."""
        self._cancel_in_flight(call_id)
        self._pending_fragments.pop(call_id, None)
        deleted = await self._sessions.delete(call_id)
        logger.info("call_ended", call_id=call_id, had_state=deleted)
        return deleted

    @asynccontextmanager
    async def _call_lock(self, call_id: str) -> AsyncIterator[None]:
        """Serialize turns of one call; the lock is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(call_id, asyncio.Lock())
        self._lock_users[call_id] = self._lock_users.get(call_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[call_id] -= 1
            if not self._lock_users[call_id]:
                del self._lock_users[call_id]
                self._locks.pop(call_id, None)

    def _cancel_in_flight(self, call_id: str) -> None:
        task = self._in_flight.get(call_id)
        if task is not None and not task.done():
            task.cancel()
            logger.info("turn_cancelled", call_id=call_id)

    async def _save(self, session: SessionState) -> None:
        try:
            await self._sessions.save(session)
        except Exception as e:  # noqa: BLE001
            logger.error("session_save_failed", call_id=session.call_id, error=str(e))

    def _to_outcome(self, ctx: TurnContext) -> TurnOutcome:
        text = ctx.final_response or ctx.proposed_response
        action = ctx.final_action or TurnAction.RESPOND
        target = ctx.transfer_target
        if not text or not text.strip():
            logger.warning("turn_without_response", call_id=ctx.call_id, stages=ctx.stages_fired)
            text = self._handoff_message
            action = TurnAction.TRANSFER
            target = target or "human"
        if action != TurnAction.TRANSFER:
            target = None
        return TurnOutcome(
            call_id=ctx.call_id,
            turn_number=ctx.turn_number,
            response_text=text,
            action=action,
            transfer_target=target,
            side_effects=list(ctx.side_effects),
            short_circuited=ctx.short_circuit,
            audit=list(ctx.audit),
        )

    def _handoff_outcome(self, call_id: str, *, turn_number: int, reason: str) -> TurnOutcome:
        return TurnOutcome(
            call_id=call_id,
            turn_number=turn_number,
            response_text=self._handoff_message,
            action=TurnAction.TRANSFER,
            transfer_target="human",
            short_circuited=True,
            audit=[AuditEntry(stage="service", event="SAFE_DEFAULT", detail={"reason": reason})],
        )
