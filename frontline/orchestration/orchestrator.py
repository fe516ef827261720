"""Turn orchestrator: runs the configured stages for one caller utterance."""

import time
from collections.abc import Iterable, Sequence

from frontline.config.models.pipeline import StageConfig
from frontline.conversation.models import AuditEntry, SessionState, TurnAction, TurnContext
from frontline.errors import FatalTurnError
from frontline.observability.logging import get_logger
from frontline.observability.metrics import STAGE_FAILURES, STAGE_LATENCY
from frontline.orchestration.merge import merge_stage_update
from frontline.orchestration.stage import TurnStage

logger = get_logger(__name__)

SAFE_DEFAULT_MESSAGE = (
    "I'm sorry, I'm having trouble with that right now. "
    "Let me transfer you to someone who can help."
)


class TurnOrchestrator:
    """Sequences named stages into one call-turn pipeline.

    Stages run in configured order; disabled or unknown stages are skipped.
    After each stage its update is merged through the allow-list, and the
    pipeline stops as soon as ``short_circuit`` is set. A stage that raises
    or returns an invalid update is logged and treated as a no-op, except
    for FatalTurnError, which ends the turn with a transfer to a human.
    """

    def __init__(
        self,
        stages: Iterable[TurnStage],
        *,
        safe_default_message: str = SAFE_DEFAULT_MESSAGE,
    ) -> None:
        self._stages = {stage.name: stage for stage in stages}
        self._safe_default_message = safe_default_message

    @property
    def stage_names(self) -> list[str]:
        return list(self._stages)

    async def run_turn(
        self,
        utterance: str,
        session: SessionState,
        stage_config: Sequence[StageConfig],
        *,
        signals: dict[str, float] | None = None,
    ) -> TurnContext:
        """Process one utterance and return the accumulated context.

        Updates the session's turn bookkeeping before returning.
        """
        ctx = TurnContext(
            call_id=session.call_id,
            tenant_id=session.tenant_id,
            turn_number=session.next_turn_number,
            raw_input=utterance,
            signals=signals or {},
            entities=dict(session.collected_entities),
        )
        started = time.perf_counter()
        logger.info("turn_started", call_id=ctx.call_id, turn_number=ctx.turn_number)

        for config in stage_config:
            if not config.enabled:
                logger.debug("stage_disabled", stage=config.name)
                continue
            stage = self._stages.get(config.name)
            if stage is None:
                logger.warning("stage_not_registered", stage=config.name)
                continue
            if not await self._run_stage(stage, ctx, session):
                break
            if ctx.short_circuit:
                logger.info("turn_short_circuited", stage=stage.name, action=_action(ctx))
                break

        session.turn_count = ctx.turn_number
        if ctx.classification is not None:
            session.last_triage_decision = ctx.classification.summary()
        session.collected_entities = dict(ctx.entities)

        logger.info(
            "turn_completed",
            call_id=ctx.call_id,
            turn_number=ctx.turn_number,
            action=_action(ctx),
            short_circuit=ctx.short_circuit,
            stages=ctx.stages_fired,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return ctx

    async def _run_stage(self, stage: TurnStage, ctx: TurnContext, session: SessionState) -> bool:
        """Run one stage. Returns False when the pipeline must stop."""
        started = time.perf_counter()
        try:
            update = await stage.run(ctx, session)
        except FatalTurnError as e:
            logger.error(
                "turn_fatal_error",
                stage=stage.name,
                call_id=ctx.call_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._apply_safe_default(ctx, stage.name, e)
            return False
        except Exception as e:  # noqa: BLE001
            self._record_failure(stage.name, ctx, e, event="stage_failed")
            return True
        finally:
            STAGE_LATENCY.labels(stage=stage.name).observe(time.perf_counter() - started)

        if update:
            try:
                dropped = merge_stage_update(ctx, update)
            except Exception as e:  # noqa: BLE001
                self._record_failure(stage.name, ctx, e, event="stage_update_rejected")
                return True
            if dropped:
                logger.warning("stage_update_fields_dropped", stage=stage.name, fields=dropped)
        return True

    def _record_failure(
        self, stage_name: str, ctx: TurnContext, error: Exception, *, event: str
    ) -> None:
        STAGE_FAILURES.labels(stage=stage_name).inc()
        logger.error(
            event,
            stage=stage_name,
            call_id=ctx.call_id,
            error=str(error),
            error_type=type(error).__name__,
            exc_info=True,
        )
        ctx.audit.append(
            AuditEntry(
                stage=stage_name,
                event="STAGE_FAILED",
                detail={"error_type": type(error).__name__},
            )
        )

    def _apply_safe_default(self, ctx: TurnContext, stage_name: str, error: Exception) -> None:
        merge_stage_update(
            ctx,
            {
                "final_response": self._safe_default_message,
                "final_action": TurnAction.TRANSFER,
                "transfer_target": "human",
                "short_circuit": True,
                "audit": [
                    AuditEntry(
                        stage=stage_name,
                        event="SAFE_DEFAULT",
                        detail={"error_type": type(error).__name__},
                    )
                ],
            },
        )


def _action(ctx: TurnContext) -> str | None:
    return ctx.final_action.value if ctx.final_action else None
