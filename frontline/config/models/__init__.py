"""Nested configuration models."""

from frontline.config.models.api import APIConfig
from frontline.config.models.edge_cases import EdgeCaseConfig
from frontline.config.models.observability import ObservabilityConfig
from frontline.config.models.pipeline import (
    IntakeStepConfig,
    PipelineConfig,
    ResponseStepConfig,
    StageConfig,
)
from frontline.config.models.policy import PolicyConfig
from frontline.config.models.storage import StorageConfig
from frontline.config.models.triage import TriageConfig

__all__ = [
    "APIConfig",
    "EdgeCaseConfig",
    "IntakeStepConfig",
    "ObservabilityConfig",
    "PipelineConfig",
    "PolicyConfig",
    "ResponseStepConfig",
    "StageConfig",
    "StorageConfig",
    "TriageConfig",
]
