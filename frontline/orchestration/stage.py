"""TurnStage abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from frontline.conversation.models import SessionState, TurnContext


class TurnStage(ABC):
    """One named step of the turn pipeline.

    A stage reads the accumulated TurnContext and returns a partial update.
    Only allow-listed fields of the update are merged; a stage never
    assigns to the context directly. Stages may mutate SessionState only
    through the edge-case state machine.
    """

    name: str

    @abstractmethod
    async def run(self, ctx: TurnContext, session: SessionState) -> Mapping[str, Any] | None:
        """Return the fields this stage wants to set, or None for no change."""
        pass
