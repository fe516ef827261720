"""Shared test fixtures for the Frontline test suite."""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import pytest

from frontline.conversation.models import SessionState, TurnContext


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def call_id() -> str:
    return "call-0001"


@pytest.fixture
def session(tenant_id: UUID, call_id: str) -> SessionState:
    """Fresh state for a call that has just been answered."""
    return SessionState(call_id=call_id, tenant_id=tenant_id)


@pytest.fixture
def make_turn(tenant_id: UUID, call_id: str) -> Callable[..., TurnContext]:
    """Factory for TurnContext instances.

    Usage:
        def test_something(make_turn):
            turn = make_turn("my furnace is loud", turn_number=2)
    """

    def _make(raw_input: str = "", **fields: Any) -> TurnContext:
        fields.setdefault("turn_number", 1)
        return TurnContext(call_id=call_id, tenant_id=tenant_id, raw_input=raw_input, **fields)

    return _make


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            if self.original_env[key] is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = self.original_env[key]


@pytest.fixture
def env_override() -> Callable[[dict[str, str]], EnvOverrideContext]:
    """Temporarily set environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"FRONTLINE_POLICY__BUDGET_MS": "8"}):
                ...
    """

    def _env_override(overrides: dict[str, str]) -> EnvOverrideContext:
        return EnvOverrideContext(overrides)

    return _env_override


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test."""
    from frontline.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
