"""Dependency injection for API routes.

The runtime is built once from settings and shared by every request.
Tests override ``get_runtime`` (or ``get_settings``) through
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from frontline.config import get_settings as load_settings
from frontline.config.settings import Settings
from frontline.observability.logging import get_logger
from frontline.policy.compiler import PolicyCompiler
from frontline.runtime import Runtime, create_runtime
from frontline.service import CallTurnService
from frontline.triage.compiler import RuleCompiler

logger = get_logger(__name__)

_runtime: Runtime | None = None


def get_settings() -> Settings:
    """Application settings, cached by the config package."""
    return load_settings()


def get_runtime(settings: Annotated[Settings, Depends(get_settings)]) -> Runtime:
    """Get the shared Runtime, creating it on first access."""
    global _runtime
    if _runtime is None:
        _runtime = create_runtime(settings)
        logger.info("runtime_initialized")
    return _runtime


def get_call_service(runtime: Annotated[Runtime, Depends(get_runtime)]) -> CallTurnService:
    return runtime.service


def get_rule_compiler(runtime: Annotated[Runtime, Depends(get_runtime)]) -> RuleCompiler:
    return runtime.rule_compiler


def get_policy_compiler(runtime: Annotated[Runtime, Depends(get_runtime)]) -> PolicyCompiler:
    return runtime.policy_compiler


SettingsDep = Annotated[Settings, Depends(get_settings)]
RuntimeDep = Annotated[Runtime, Depends(get_runtime)]
CallServiceDep = Annotated[CallTurnService, Depends(get_call_service)]
RuleCompilerDep = Annotated[RuleCompiler, Depends(get_rule_compiler)]
PolicyCompilerDep = Annotated[PolicyCompiler, Depends(get_policy_compiler)]


async def reset_dependencies() -> None:
    """Close and forget the shared runtime. Used by tests and on shutdown."""
    global _runtime
    if _runtime is not None:
        await _runtime.close()
        _runtime = None
    load_settings.cache_clear()
