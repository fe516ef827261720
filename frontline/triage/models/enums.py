"""Enums for the triage domain."""

from enum import Enum


class RuleSource(str, Enum):
    """Where a rule came from.

    Source rank breaks priority ties: MANUAL beats GENERATED beats SYSTEM.
    """

    MANUAL = "MANUAL"
    GENERATED = "GENERATED"
    SYSTEM = "SYSTEM"

    @property
    def rank(self) -> int:
        return _SOURCE_RANK[self]


_SOURCE_RANK = {
    RuleSource.MANUAL: 3,
    RuleSource.GENERATED: 2,
    RuleSource.SYSTEM: 1,
}


class RuleAction(str, Enum):
    """Well-known rule action tags.

    Rules may also carry ``TRANSFER_<DEPARTMENT>`` tags, which route the
    caller straight to that department.
    """

    ESCALATE_TO_HUMAN = "ESCALATE_TO_HUMAN"
    TAKE_MESSAGE = "TAKE_MESSAGE"
    END_CALL_POLITE = "END_CALL_POLITE"
    DIRECT_TO_CLASSIFIER = "DIRECT_TO_CLASSIFIER"
    DIRECT_TO_3TIER = "DIRECT_TO_3TIER"
    EXPLAIN_AND_PUSH = "EXPLAIN_AND_PUSH"


TRANSFER_ACTION_PREFIX = "TRANSFER_"


class KeywordSource(str, Enum):
    """Which input satisfied a keyword."""

    UTTERANCE = "utterance"
    AUXILIARY = "auxiliary"
