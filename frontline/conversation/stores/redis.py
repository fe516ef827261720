"""Redis implementation of SessionStore."""

import redis.asyncio as redis
from pydantic import ValidationError

from frontline.config.models.storage import StorageConfig
from frontline.conversation.models import SessionState
from frontline.conversation.store import SessionStore
from frontline.models import utc_now
from frontline.observability.logging import get_logger

logger = get_logger(__name__)


class RedisSessionStore(SessionStore):
    """Call state as JSON strings under ``{prefix}:{call_id}``.

    Every save refreshes the TTL, which caps the lifetime of state for
    calls that end without an explicit delete.
    """

    def __init__(self, client: redis.Redis, config: StorageConfig | None = None) -> None:
        self._client = client
        self._config = config or StorageConfig()

    def _key(self, call_id: str) -> str:
        return f"{self._config.session_key_prefix}:{call_id}"

    async def get(self, call_id: str) -> SessionState | None:
        data = await self._client.get(self._key(call_id))
        if data is None:
            return None
        try:
            return SessionState.model_validate_json(data)
        except ValidationError as e:
            logger.warning("session_state_corrupt", call_id=call_id, error=str(e))
            await self._client.delete(self._key(call_id))
            return None

    async def save(self, state: SessionState) -> str:
        state.last_activity_at = utc_now()
        await self._client.setex(
            self._key(state.call_id),
            self._config.session_ttl_seconds,
            state.model_dump_json(),
        )
        logger.debug("session_state_saved", call_id=state.call_id, turn_count=state.turn_count)
        return state.call_id

    async def delete(self, call_id: str) -> bool:
        return bool(await self._client.delete(self._key(call_id)))

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except redis.RedisError:
            return False
