"""Behavioral polish applied after guardrails.

Transforms run in BehaviorFlag declaration order and compose: each one sees
the previous one's output.
"""

import re
from collections.abc import Callable
from typing import TYPE_CHECKING

from frontline.conversation.models import TurnContext
from frontline.policy.models import BehaviorFlag

if TYPE_CHECKING:
    from frontline.policy.runtime import Policy

_ACK_PREFIX = re.compile(r"^\s*(ok|okay|sure|got it|absolutely|of course|certainly)\b", re.IGNORECASE)

CONTRACTIONS: dict[str, str] = {
    "can't": "cannot",
    "won't": "will not",
    "don't": "do not",
    "doesn't": "does not",
    "didn't": "did not",
    "isn't": "is not",
    "aren't": "are not",
    "wasn't": "was not",
    "weren't": "were not",
    "haven't": "have not",
    "hasn't": "has not",
    "couldn't": "could not",
    "shouldn't": "should not",
    "wouldn't": "would not",
    "i'm": "I am",
    "i'll": "I will",
    "i've": "I have",
    "i'd": "I would",
    "you're": "you are",
    "you'll": "you will",
    "you've": "you have",
    "we're": "we are",
    "we'll": "we will",
    "we've": "we have",
    "they're": "they are",
    "they'll": "they will",
    "it's": "it is",
    "that's": "that is",
    "there's": "there is",
    "what's": "what is",
    "let's": "let us",
}

_CONTRACTION_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(c) for c in sorted(CONTRACTIONS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)


def _acknowledge(text: str, policy: "Policy", turn: TurnContext) -> str:  # noqa: ARG001
    if not text or _ACK_PREFIX.match(text):
        return text
    if text.startswith(("I ", "I'")):
        return f"Ok, {text}"
    return f"Ok, {text[0].lower()}{text[1:]}"


def _introduce_company(text: str, policy: "Policy", turn: TurnContext) -> str:
    company = policy.company_name
    if not company or not turn.is_first_turn or company.lower() in text.lower():
        return text
    return f"Thanks for calling {company}! {text}"


def _confirm_entities(text: str, policy: "Policy", turn: TurnContext) -> str:  # noqa: ARG001
    if not turn.entities:
        return text
    details = ", ".join(
        f"your {key.replace('_', ' ')} as {value}" for key, value in turn.entities.items() if value
    )
    if not details:
        return text
    confirmation = f"Just to confirm, I have {details}."
    if confirmation in text:
        return text
    return f"{text.rstrip()} {confirmation}"


def _expand_contractions(text: str, policy: "Policy", turn: TurnContext) -> str:  # noqa: ARG001
    def replace(found: re.Match[str]) -> str:
        word = found.group(0)
        expanded = CONTRACTIONS[word.lower().replace("’", "'")]
        if word[0].isupper() and not expanded.startswith("I "):
            return expanded[0].upper() + expanded[1:]
        return expanded

    return _CONTRACTION_PATTERN.sub(replace, text.replace("’", "'"))


BEHAVIORS: dict[BehaviorFlag, Callable[[str, "Policy", TurnContext], str]] = {
    BehaviorFlag.ACK_OK: _acknowledge,
    BehaviorFlag.USE_COMPANY_NAME: _introduce_company,
    BehaviorFlag.CONFIRM_ENTITIES: _confirm_entities,
    BehaviorFlag.POLITE_PROFESSIONAL: _expand_contractions,
}


def apply_behavior(
    text: str, policy: "Policy", turn: TurnContext
) -> tuple[str, list[BehaviorFlag]]:
    """Apply the enabled transforms and report which ones changed the text."""
    applied: list[BehaviorFlag] = []
    for flag, transform in BEHAVIORS.items():
        if flag not in policy.behavior:
            continue
        rewritten = transform(text, policy, turn)
        if rewritten != text:
            applied.append(flag)
            text = rewritten
    return text, applied
