"""SessionStore implementations."""

from frontline.conversation.stores.inmemory import InMemorySessionStore

__all__ = ["InMemorySessionStore"]
