"""SessionStore abstract interface."""

from abc import ABC, abstractmethod

from frontline.conversation.models import SessionState


class SessionStore(ABC):
    """Per-call session state keyed by call ID.

    State lives for the duration of a call and is deleted when it ends.
    """

    @abstractmethod
    async def get(self, call_id: str) -> SessionState | None:
        """Get a call's state."""
        pass

    @abstractmethod
    async def save(self, state: SessionState) -> str:
        """Save a call's state, returning the call ID."""
        pass

    @abstractmethod
    async def delete(self, call_id: str) -> bool:
        """Discard a call's state."""
        pass

    async def health_check(self) -> bool:
        return True
