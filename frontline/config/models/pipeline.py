"""Turn pipeline configuration models."""

from pydantic import BaseModel, Field, model_validator

DEFAULT_STAGE_ORDER = ("intake", "triage", "response", "policy")


class StageConfig(BaseModel):
    """One named stage in the turn pipeline."""

    name: str
    enabled: bool = True


class IntakeStepConfig(BaseModel):
    """Language-model intent extraction."""

    enabled: bool = Field(default=True, description="Run intent extraction at all")
    model: str = Field(
        default="openai/gpt-4o-mini",
        description="Model identifier, or mock/<name> for tests",
    )
    fallback_models: list[str] = Field(default_factory=list)
    timeout_seconds: float = Field(default=5.0, gt=0, description="Hard timeout per attempt")
    max_retries: int = Field(default=1, ge=0, description="Retries after the first attempt")
    backoff_ms: int = Field(default=500, ge=0, description="Base backoff, doubled per retry")
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=300, gt=0)


class ResponseStepConfig(BaseModel):
    """Free-text response generation."""

    model: str = Field(default="openai/gpt-4o-mini")
    fallback_models: list[str] = Field(default_factory=list)
    timeout_seconds: float = Field(default=8.0, gt=0)
    temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    max_tokens: int = Field(default=200, gt=0)
    use_response_pools: bool = Field(
        default=True,
        description="Prefer the compiled rule set's canned responses when one exists",
    )


class PipelineConfig(BaseModel):
    """Stage order and per-stage settings for a call turn."""

    stages: list[StageConfig] = Field(
        default_factory=lambda: [StageConfig(name=name) for name in DEFAULT_STAGE_ORDER],
    )
    intake: IntakeStepConfig = Field(default_factory=IntakeStepConfig)
    response: ResponseStepConfig = Field(default_factory=ResponseStepConfig)
    unclassified_confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Below this confidence a catch-all match counts as not understood",
    )

    @model_validator(mode="after")
    def _unique_stage_names(self) -> "PipelineConfig":
        names = [stage.name for stage in self.stages]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate stage names in pipeline: {names}")
        return self
