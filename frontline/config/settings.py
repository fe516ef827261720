"""Root settings model for Frontline configuration."""

from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from frontline.config.models.api import APIConfig
from frontline.config.models.edge_cases import EdgeCaseConfig
from frontline.config.models.observability import ObservabilityConfig
from frontline.config.models.pipeline import PipelineConfig
from frontline.config.models.policy import PolicyConfig
from frontline.config.models.storage import StorageConfig
from frontline.config.models.triage import TriageConfig

# TOML values handed to the settings source below
_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Install the parsed TOML tree used by subsequently built Settings."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by the parsed config/*.toml files."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return dict(_toml_config)


class Settings(BaseSettings):
    """All Frontline configuration sections.

    Precedence, lowest first:
    1. Model defaults
    2. config/default.toml
    3. config/{FRONTLINE_ENV}.toml
    4. FRONTLINE_* environment variables (``__`` separates nesting)
    """

    model_config = SettingsConfigDict(
        env_prefix="FRONTLINE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="frontline", description="Service name for logs")
    debug: bool = False

    api: APIConfig = Field(default_factory=APIConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    triage: TriageConfig = Field(default_factory=TriageConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    edge_cases: EdgeCaseConfig = Field(default_factory=EdgeCaseConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Constructor arguments beat environment variables, which beat TOML."""
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )
