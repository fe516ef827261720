"""Unit tests for Settings and the configuration models."""

from collections.abc import Callable
from pathlib import Path

import pytest
from pydantic import ValidationError

from frontline.config import get_settings, reload_settings
from frontline.config.models.pipeline import PipelineConfig, StageConfig
from frontline.config.models.policy import PolicyConfig
from frontline.config.models.triage import TriageConfig
from frontline.config.settings import Settings, set_toml_config


@pytest.fixture(autouse=True)
def reset_toml() -> None:
    set_toml_config({})


class TestSettingsDefaults:
    """Defaults in code when no file or variable is present."""

    def test_section_defaults(self) -> None:
        settings = Settings()

        assert settings.triage.cache_ttl_seconds == 3600
        assert settings.triage.fallback_action == "DIRECT_TO_CLASSIFIER"
        assert settings.policy.budget_ms == 10
        assert settings.policy.alert_ms == 15
        assert settings.policy.cache_ttl_seconds == 86400
        assert settings.edge_cases.max_clarifications == 2
        assert settings.pipeline.intake.timeout_seconds == 5.0
        assert settings.pipeline.unclassified_confidence == 0.5

    def test_default_stage_order(self) -> None:
        names = [stage.name for stage in Settings().pipeline.stages]
        assert names == ["intake", "triage", "response", "policy"]


class TestSettingsSources:
    """TOML values, then environment variables, override the defaults."""

    def test_toml_values_apply(self) -> None:
        set_toml_config({"triage": {"fallback_action": "ESCALATE_TO_HUMAN"}})
        assert Settings().triage.fallback_action == "ESCALATE_TO_HUMAN"

    def test_env_beats_toml(self, env_override: Callable) -> None:
        set_toml_config({"policy": {"budget_ms": 12}})
        with env_override({"FRONTLINE_POLICY__BUDGET_MS": "8"}):
            assert Settings().policy.budget_ms == 8

    def test_get_settings_reads_config_dir(
        self,
        test_config_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        (test_config_dir / "default.toml").write_text('[storage]\nsession_key_prefix = "vc"')
        monkeypatch.setenv("FRONTLINE_CONFIG_DIR", str(test_config_dir))

        assert get_settings().storage.session_key_prefix == "vc"
        assert get_settings() is get_settings()

    def test_reload_settings_rebuilds(
        self,
        test_config_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        default = test_config_dir / "default.toml"
        default.write_text("[policy]\nbudget_ms = 10")
        monkeypatch.setenv("FRONTLINE_CONFIG_DIR", str(test_config_dir))
        first = get_settings()

        default.write_text("[policy]\nbudget_ms = 20")
        second = reload_settings()

        assert first.policy.budget_ms == 10
        assert second.policy.budget_ms == 20


class TestConfigValidation:
    """Model-level validation of configuration sections."""

    def test_duplicate_stage_names_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PipelineConfig(stages=[StageConfig(name="triage"), StageConfig(name="triage")])

    def test_alert_must_not_be_below_budget(self) -> None:
        with pytest.raises(ValidationError):
            PolicyConfig(budget_ms=10, alert_ms=5)

    def test_fallback_cannot_outrank_authored_rules(self) -> None:
        with pytest.raises(ValidationError):
            TriageConfig(fallback_priority=60)

    def test_fallback_priority_may_be_negative(self) -> None:
        assert TriageConfig(fallback_priority=-5).fallback_priority == -5
