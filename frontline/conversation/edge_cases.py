"""Edge-case state machine over SessionState.

Three independent concerns, each called at most once per turn:

- unknown loop: consecutive turns that could not be classified lead to
  clarifying prompts, then escalation to a human
- barge-in: speech captured while the agent was talking is dropped,
  handled immediately, or queued for the next turn
- silence: consecutive empty turns lead to a gentle prompt, a firmer
  prompt, then a polite hangup
"""

from enum import Enum

from pydantic import BaseModel, Field

from frontline.config.models.edge_cases import EdgeCaseConfig
from frontline.conversation.models import SessionState
from frontline.observability.logging import get_logger
from frontline.triage.matcher import contains_phrase, phrase_tokens, tokenize

logger = get_logger(__name__)


class UnknownLoopDecision(BaseModel):
    """What to do with a turn that was not understood."""

    attempt: int = Field(..., ge=1, description="Consecutive unclassified turns so far")
    escalate: bool
    response: str


class InterruptionKind(str, Enum):
    IGNORED = "ignored"
    URGENT = "urgent"
    QUEUED = "queued"


class InterruptionDecision(BaseModel):
    """How to treat a barge-in fragment."""

    kind: InterruptionKind
    fragment: str
    suppress_output: bool = Field(default=False, description="Stop the prompt being spoken")
    acknowledgment: str | None = None
    matched_keyword: str | None = None


class SilenceDecision(BaseModel):
    silence_count: int = Field(..., ge=1)
    response: str
    hangup: bool = False


def record_unclassified(state: SessionState, config: EdgeCaseConfig) -> UnknownLoopDecision:
    """Count a non-understood turn and pick a clarification or escalation.

    With the default of two clarifications, three consecutive misses give
    clarification #1, clarification #2, then escalation. The counter is not
    reset on escalation; the caller leaves the automated flow.
    """
    previous = state.consecutive_unknown
    state.consecutive_unknown = previous + 1

    if previous < config.max_clarifications and config.clarification_prompts:
        prompts = config.clarification_prompts
        response = prompts[min(previous, len(prompts) - 1)]
        logger.info("unknown_turn_clarifying", call_id=state.call_id, attempt=previous + 1)
        return UnknownLoopDecision(attempt=previous + 1, escalate=False, response=response)

    logger.warning(
        "unknown_loop_escalated",
        call_id=state.call_id,
        attempt=previous + 1,
        max_clarifications=config.max_clarifications,
    )
    return UnknownLoopDecision(
        attempt=previous + 1,
        escalate=True,
        response=config.escalation_message,
    )


def record_classified(state: SessionState) -> None:
    """A turn was understood: the unknown loop starts over."""
    state.consecutive_unknown = 0


def handle_interruption(
    state: SessionState, fragment: str, config: EdgeCaseConfig
) -> InterruptionDecision:
    """Classify speech captured while the agent was speaking.

    Fragments shorter than ``min_interruption_chars`` are noise. Fragments
    containing an urgent keyword must be processed now and cut off the
    current output. Anything else waits in the session queue until the
    current output finishes.
    """
    text = " ".join(fragment.split())
    if len(text) < config.min_interruption_chars:
        return InterruptionDecision(kind=InterruptionKind.IGNORED, fragment=text)

    tokens = tokenize(text)
    for keyword in config.urgent_keywords:
        needle = phrase_tokens(keyword)
        if contains_phrase(tokens, needle):
            logger.info("urgent_interruption", call_id=state.call_id, keyword=keyword)
            return InterruptionDecision(
                kind=InterruptionKind.URGENT,
                fragment=text,
                suppress_output=True,
                matched_keyword=keyword,
            )

    state.queued_interruptions.append(text)
    logger.debug(
        "interruption_queued",
        call_id=state.call_id,
        queued=len(state.queued_interruptions),
    )
    return InterruptionDecision(
        kind=InterruptionKind.QUEUED,
        fragment=text,
        acknowledgment=config.interruption_acknowledgment,
    )


def drain_interruptions(state: SessionState) -> list[str]:
    """Take the queued fragments, oldest first, and clear the queue."""
    queued = list(state.queued_interruptions)
    state.queued_interruptions = []
    return queued


def record_silence(state: SessionState, config: EdgeCaseConfig) -> SilenceDecision:
    """Count an empty turn and pick the graduated response for it."""
    state.consecutive_silence += 1
    count = state.consecutive_silence
    prompts = config.silence_prompts

    if count <= len(prompts):
        return SilenceDecision(silence_count=count, response=prompts[count - 1])

    logger.info("silence_hangup", call_id=state.call_id, silence_count=count)
    return SilenceDecision(
        silence_count=count,
        response=config.silence_hangup_message,
        hangup=True,
    )


def record_speech(state: SessionState) -> None:
    """Any non-empty input resets the silence counter."""
    state.consecutive_silence = 0

