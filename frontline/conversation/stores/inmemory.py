"""In-memory implementation of SessionStore."""

from frontline.conversation.models import SessionState
from frontline.conversation.store import SessionStore
from frontline.models import utc_now


class InMemorySessionStore(SessionStore):
    """Dict-backed SessionStore for tests and single-process development."""

    def __init__(self) -> None:
        self._states: dict[str, SessionState] = {}

    async def get(self, call_id: str) -> SessionState | None:
        state = self._states.get(call_id)
        return state.model_copy(deep=True) if state else None

    async def save(self, state: SessionState) -> str:
        state.last_activity_at = utc_now()
        self._states[state.call_id] = state.model_copy(deep=True)
        return state.call_id

    async def delete(self, call_id: str) -> bool:
        return self._states.pop(call_id, None) is not None
