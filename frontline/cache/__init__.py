"""Key-value cache for compiled tenant artifacts."""

from frontline.cache.base import ArtifactCache
from frontline.cache.inmemory import InMemoryArtifactCache

__all__ = ["ArtifactCache", "InMemoryArtifactCache"]
