"""Conversation models: per-call session state and per-turn context."""

from frontline.conversation.models.session import SessionState
from frontline.conversation.models.turn import AuditEntry, TurnAction, TurnContext

__all__ = ["AuditEntry", "SessionState", "TurnAction", "TurnContext"]
