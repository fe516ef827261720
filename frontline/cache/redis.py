"""Redis implementation of ArtifactCache."""

import redis.asyncio as redis

from frontline.cache.base import ArtifactCache
from frontline.errors import CacheError
from frontline.observability.logging import get_logger

logger = get_logger(__name__)


class RedisArtifactCache(ArtifactCache):
    """ArtifactCache backed by Redis string keys with SETEX expiry.

    The client must be created with ``decode_responses=False`` so values
    round-trip as bytes.
    """

    def __init__(self, client: redis.Redis, namespace: str = "frontline") -> None:
        self._client = client
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}" if self._namespace else key

    async def get(self, key: str) -> bytes | None:
        try:
            value = await self._client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning("artifact_cache_get_failed", key=key, error=str(e))
            raise CacheError(f"GET {key} failed") from e
        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode()

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        try:
            await self._client.setex(self._key(key), ttl_seconds, value)
        except redis.RedisError as e:
            logger.warning("artifact_cache_set_failed", key=key, error=str(e))
            raise CacheError(f"SET {key} failed") from e

    async def delete(self, key: str) -> bool:
        try:
            removed = await self._client.delete(self._key(key))
        except redis.RedisError as e:
            logger.warning("artifact_cache_delete_failed", key=key, error=str(e))
            raise CacheError(f"DEL {key} failed") from e
        return bool(removed)

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except redis.RedisError:
            return False
