"""Fire-and-forget side effects requested by matched edge cases.

Side effects run as independent asyncio tasks. They never delay the turn,
their failures are logged and dropped, and cancelling the turn that
requested them does not cancel them.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Iterable

from frontline.observability.logging import get_logger
from frontline.policy.models import SideEffect

logger = get_logger(__name__)


class SideEffectSink(ABC):
    """Destination that actually carries out a side effect."""

    @abstractmethod
    async def execute(self, effect: SideEffect, *, tenant_id: str, call_id: str) -> None:
        pass


class LoggingSideEffectSink(SideEffectSink):
    """Records side effects in the log. Used when no integration is wired."""

    async def execute(self, effect: SideEffect, *, tenant_id: str, call_id: str) -> None:
        logger.info(
            "side_effect_executed",
            kind=effect.kind,
            value=effect.value,
            edge_case=effect.edge_case,
            tenant_id=tenant_id,
            call_id=call_id,
        )


class SideEffectDispatcher:
    """Schedules side effects without awaiting them."""

    def __init__(self, sink: SideEffectSink | None = None) -> None:
        self._sink = sink or LoggingSideEffectSink()
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, effects: Iterable[SideEffect], *, tenant_id: str, call_id: str) -> list[str]:
        """Start one task per effect and return their labels.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        labels: list[str] = []
        for effect in effects:
            task = loop.create_task(
                self._run(effect, tenant_id=tenant_id, call_id=call_id),
                name=f"side-effect:{effect.label}",
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            labels.append(effect.label)
        return labels

    async def drain(self) -> None:
        """Wait for every scheduled side effect to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _run(self, effect: SideEffect, *, tenant_id: str, call_id: str) -> None:
        try:
            await self._sink.execute(effect, tenant_id=tenant_id, call_id=call_id)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "side_effect_failed",
                kind=effect.kind,
                edge_case=effect.edge_case,
                error=str(e),
                call_id=call_id,
            )
