"""Rule store implementations."""

from frontline.triage.stores.inmemory import InMemoryRuleStore

__all__ = ["InMemoryRuleStore"]
