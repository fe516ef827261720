"""Per-call edge-case handling configuration."""

from pydantic import BaseModel, Field


def _default_urgent_keywords() -> list[str]:
    return [
        "stop",
        "wait",
        "emergency",
        "operator",
        "human",
        "representative",
        "agent",
        "help",
        "urgent",
        "cancel",
    ]


class EdgeCaseConfig(BaseModel):
    """Thresholds and prompts for unknown loops, barge-in and silence."""

    max_clarifications: int = Field(
        default=2,
        ge=0,
        description="Clarifying prompts before an unclassified caller is escalated",
    )
    clarification_prompts: list[str] = Field(
        default_factory=lambda: [
            "I'm sorry, I didn't quite catch that. Could you tell me a little more about what you need?",
            "I want to make sure I get this right. Are you calling about a repair, an appointment, or a billing question?",
        ],
    )
    escalation_message: str = Field(
        default="Let me get you to someone who can help. One moment please.",
    )
    min_interruption_chars: int = Field(
        default=3,
        ge=1,
        description="Shorter barge-in fragments are treated as noise",
    )
    urgent_keywords: list[str] = Field(default_factory=_default_urgent_keywords)
    interruption_acknowledgment: str = Field(default="Got it, one moment.")
    silence_prompts: list[str] = Field(
        default_factory=lambda: [
            "Are you still there? I'm happy to help whenever you're ready.",
            "I'm still here. If you'd like help, please say something now.",
        ],
    )
    silence_hangup_message: str = Field(
        default="It sounds like we got disconnected. Please call back anytime. Goodbye!",
    )
