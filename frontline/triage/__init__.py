"""Triage: rule compilation and first-match-wins classification."""

from frontline.triage.authoring import RuleAuthoringService
from frontline.triage.compiler import RuleCompiler
from frontline.triage.matcher import TriageMatcher
from frontline.triage.store import RuleStore

__all__ = ["RuleAuthoringService", "RuleCompiler", "RuleStore", "TriageMatcher"]
