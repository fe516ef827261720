"""Tagged pattern types.

A pattern is stored as plain data (``KeywordSetSpec`` or ``RegexSpec``) and
turned into a matcher once, when a policy is loaded. Matching never
recompiles anything.
"""

import re
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class KeywordSetSpec(BaseModel):
    """Literal keywords or phrases, matched on word boundaries."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["keywords"] = "keywords"
    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()


class RegexSpec(BaseModel):
    """A regular expression."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["regex"] = "regex"
    pattern: str
    ignore_case: bool = True


PatternSpec = Annotated[KeywordSetSpec | RegexSpec, Field(discriminator="kind")]


def _phrase_regex(phrase: str) -> re.Pattern[str]:
    words = [re.escape(word) for word in phrase.lower().split()]
    return re.compile(r"\b" + r"\s+".join(words) + r"\b")


class KeywordSetMatcher:
    """Matches when any ``any_of`` phrase and every ``all_of`` phrase occur.

    An empty group is ignored; a spec with both groups empty never matches.
    """

    def __init__(self, spec: KeywordSetSpec) -> None:
        self.spec = spec
        self._any = [(phrase, _phrase_regex(phrase)) for phrase in spec.any_of if phrase.strip()]
        self._all = [(phrase, _phrase_regex(phrase)) for phrase in spec.all_of if phrase.strip()]

    def search(self, text: str) -> str | None:
        """Return the phrase that triggered the match, or None."""
        if not self._any and not self._all:
            return None
        lowered = text.lower()
        hit: str | None = None
        if self._any:
            hit = next((phrase for phrase, rx in self._any if rx.search(lowered)), None)
            if hit is None:
                return None
        for phrase, rx in self._all:
            if not rx.search(lowered):
                return None
        return hit or " + ".join(phrase for phrase, _ in self._all)


class RegexMatcher:
    def __init__(self, spec: RegexSpec) -> None:
        self.spec = spec
        self._rx = re.compile(spec.pattern, re.IGNORECASE if spec.ignore_case else 0)

    def search(self, text: str) -> str | None:
        found = self._rx.search(text)
        return found.group(0) if found else None


PatternMatcher = KeywordSetMatcher | RegexMatcher


def build_matcher(spec: KeywordSetSpec | RegexSpec) -> PatternMatcher:
    if isinstance(spec, RegexSpec):
        return RegexMatcher(spec)
    return KeywordSetMatcher(spec)


def first_hit(matchers: tuple[PatternMatcher, ...], text: str) -> str | None:
    """Evidence from the first matcher that fires."""
    for matcher in matchers:
        hit = matcher.search(text)
        if hit is not None:
            return hit
    return None
