"""Triage matcher: first-match-wins evaluation of a compiled rule set."""

import re
from collections.abc import Iterable, Sequence
from functools import lru_cache

from frontline.errors import TriageNoMatchError
from frontline.observability.logging import get_logger
from frontline.triage.models import (
    CompiledRuleSet,
    KeywordSource,
    MatchedKeyword,
    MatchResult,
)

logger = get_logger(__name__)

_NON_WORD = re.compile(r"[^a-z0-9\s]+")
_VOWELS = frozenset("aeiou")


def normalize(text: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    text = text.lower().replace("'", "")
    return " ".join(_NON_WORD.sub(" ", text).split())


def stem(token: str) -> str:
    """Light suffix stripping so inflections of a keyword still match.

    Handles plural ``s``/``ies`` and ``ing``/``ed`` with a doubled final
    consonant (``stopping`` -> ``stop``). Short tokens are left alone.
    """
    if len(token) <= 3:
        return token
    if token.endswith("ies") and len(token) > 4:
        return token[:-3] + "y"
    for suffix in ("ing", "ed"):
        if token.endswith(suffix) and len(token) - len(suffix) >= 3:
            base = token[: -len(suffix)]
            if not any(ch in _VOWELS for ch in base):
                return token
            if len(base) >= 2 and base[-1] == base[-2] and base[-1] not in "lsz":
                base = base[:-1]
            return base
    if token.endswith("s") and not token.endswith(("ss", "us", "is")):
        return token[:-1]
    return token


def tokenize(text: str) -> tuple[str, ...]:
    """Stemmed tokens of free text such as a caller utterance."""
    return tuple(stem(token) for token in normalize(text).split())


@lru_cache(maxsize=4096)
def phrase_tokens(phrase: str) -> tuple[str, ...]:
    """Stemmed tokens of a configured keyword or phrase.

    Cached, so only call it with rule and configuration text, never with
    caller speech.
    """
    return tokenize(phrase)


def contains_phrase(haystack: Sequence[str], needle: Sequence[str]) -> bool:
    """True when ``needle`` occurs as a contiguous run inside ``haystack``."""
    if not needle:
        return False
    width = len(needle)
    for start in range(len(haystack) - width + 1):
        if tuple(haystack[start : start + width]) == tuple(needle):
            return True
    return False


class TriageMatcher:
    """Evaluates caller input against a CompiledRuleSet.

    A rule matches when every required keyword appears in the utterance or
    in one of the auxiliary keywords, and no excluded keyword appears in
    either. Rules are tried in compiled order and the first match wins. The
    catch-all has no keywords and therefore always matches.
    """

    def match(
        self,
        utterance: str,
        rule_set: CompiledRuleSet,
        auxiliary_keywords: Iterable[str] = (),
    ) -> MatchResult:
        """Return the first rule the input satisfies.

        Raises:
            TriageNoMatchError: If nothing matched, which means the rule
                set was compiled without its catch-all
        """
        spoken = tokenize(utterance) if utterance else ()
        auxiliary = [tokenize(keyword) for keyword in auxiliary_keywords if keyword]

        for evaluated, rule in enumerate(rule_set.rules, start=1):
            if any(self._locate(kw, spoken, auxiliary) for kw in rule.exclude_keywords):
                continue

            evidence: list[MatchedKeyword] = []
            for keyword in rule.keywords:
                source = self._locate(keyword, spoken, auxiliary)
                if source is None:
                    break
                evidence.append(MatchedKeyword(keyword=keyword, source=source))
            else:
                result = MatchResult(
                    rule=rule,
                    matched_keywords=tuple(evidence),
                    rules_evaluated=evaluated,
                )
                logger.debug(
                    "triage_matched",
                    rule_id=rule.rule_id,
                    action=rule.action,
                    is_fallback=rule.is_fallback,
                    matched_keywords=[kw.keyword for kw in evidence],
                    rules_evaluated=evaluated,
                )
                return result

        logger.error(
            "triage_no_match",
            tenant_id=str(rule_set.tenant_id),
            rule_count=len(rule_set),
        )
        raise TriageNoMatchError(
            f"No rule matched for tenant {rule_set.tenant_id}; catch-all missing"
        )

    @staticmethod
    def _locate(
        keyword: str,
        spoken: Sequence[str],
        auxiliary: Sequence[Sequence[str]],
    ) -> KeywordSource | None:
        needle = phrase_tokens(keyword)
        if contains_phrase(spoken, needle):
            return KeywordSource.UTTERANCE
        if any(contains_phrase(aux, needle) for aux in auxiliary):
            return KeywordSource.AUXILIARY
        return None
