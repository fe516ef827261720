"""ArtifactCache abstract interface."""

from abc import ABC, abstractmethod


class ArtifactCache(ABC):
    """Byte-oriented cache for compiled rule sets and policies.

    Keys are namespaced by the caller (``rules:{tenant}``,
    ``policy:{tenant}:active``). Implementations raise CacheError on backend
    failure; every caller treats that as a miss.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the stored value, or None when absent or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        """Store a value that expires after ``ttl_seconds``."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove a key. Returns True if something was removed."""
        pass

    async def health_check(self) -> bool:
        return True
