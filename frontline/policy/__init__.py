"""Policy: compiled per-tenant safety and style rules and the engine that applies them."""

from frontline.policy.compiler import PolicyCompiler
from frontline.policy.engine import PolicyEngine
from frontline.policy.models import PolicyDocument, PolicyResult
from frontline.policy.runtime import Policy
from frontline.policy.store import PolicyStore

__all__ = [
    "Policy",
    "PolicyCompiler",
    "PolicyDocument",
    "PolicyEngine",
    "PolicyResult",
    "PolicyStore",
]
