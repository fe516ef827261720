"""Fixtures for API tests: the real app wired to an in-memory runtime."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from frontline.api import create_app
from frontline.api.dependencies import get_runtime, get_settings, reset_dependencies
from frontline.config.models.pipeline import IntakeStepConfig, PipelineConfig, ResponseStepConfig
from frontline.config.settings import Settings
from frontline.providers.llm import MockLLMProvider
from frontline.runtime import Runtime, create_runtime


@pytest.fixture
def settings() -> Settings:
    """Settings with mock models and intent extraction switched off."""
    return Settings(
        pipeline=PipelineConfig(
            intake=IntakeStepConfig(enabled=False, model="mock/intake"),
            response=ResponseStepConfig(model="mock/response", use_response_pools=False),
        )
    )


@pytest.fixture
def mock_provider() -> MockLLMProvider:
    return MockLLMProvider(default_response="We can send a technician this week.")


@pytest.fixture
async def runtime(
    settings: Settings, mock_provider: MockLLMProvider
) -> AsyncGenerator[Runtime, None]:
    runtime = create_runtime(settings, mock_provider=mock_provider)
    yield runtime
    await runtime.close()


@pytest.fixture
async def app(settings: Settings, runtime: Runtime) -> FastAPI:
    await reset_dependencies()

    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_runtime] = lambda: runtime
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
