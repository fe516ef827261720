"""Turn orchestration: ordered stages with short-circuit semantics."""

from frontline.conversation.models import TurnContext
from frontline.orchestration.merge import MERGEABLE_FIELDS, merge_stage_update
from frontline.orchestration.orchestrator import TurnOrchestrator
from frontline.orchestration.responses import (
    LLMResponseGenerator,
    PooledResponseGenerator,
    ResponseGenerator,
)
from frontline.orchestration.stage import TurnStage
from frontline.orchestration.stages import (
    IntakeStage,
    PolicyStage,
    ResponseStage,
    TriageStage,
    resolve_rule_action,
)

__all__ = [
    "IntakeStage",
    "LLMResponseGenerator",
    "MERGEABLE_FIELDS",
    "PolicyStage",
    "PooledResponseGenerator",
    "ResponseGenerator",
    "ResponseStage",
    "TriageStage",
    "TurnContext",
    "TurnOrchestrator",
    "TurnStage",
    "merge_stage_update",
    "resolve_rule_action",
]
