"""Policy store implementations."""

from frontline.policy.stores.inmemory import InMemoryPolicyStore

__all__ = ["InMemoryPolicyStore"]
