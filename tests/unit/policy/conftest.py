"""Fixtures shared by the policy tests."""

from collections.abc import Callable
from typing import Any
from uuid import UUID

import pytest

from frontline.cache import InMemoryArtifactCache
from frontline.policy.compiler import PolicyCompiler
from frontline.policy.models import PolicyDocument
from frontline.policy.runtime import Policy
from frontline.policy.stores.inmemory import InMemoryPolicyStore


@pytest.fixture
def policy_store() -> InMemoryPolicyStore:
    return InMemoryPolicyStore()


@pytest.fixture
def policy_cache() -> InMemoryArtifactCache:
    return InMemoryArtifactCache()


@pytest.fixture
def policy_compiler(
    policy_store: InMemoryPolicyStore, policy_cache: InMemoryArtifactCache
) -> PolicyCompiler:
    return PolicyCompiler(policy_store, policy_cache)


@pytest.fixture
def make_policy(
    policy_compiler: PolicyCompiler, tenant_id: UUID
) -> Callable[..., Policy]:
    """Compile a PolicyDocument built from keyword arguments into a Policy.

    Usage:
        policy = make_policy(guardrails=["NO_PRICES"], approved_prices=["$89"])
    """

    def _make(**fields: Any) -> Policy:
        document = PolicyDocument(tenant_id=tenant_id, **fields)
        return Policy(policy_compiler.compile(document))

    return _make
