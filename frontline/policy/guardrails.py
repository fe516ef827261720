"""Content guardrails for outgoing response text.

Each guardrail rewrites violations into neutral placeholder text. None of
the placeholders can trigger a guardrail themselves, so running the stage
over its own output changes nothing.
"""

import re
from collections.abc import Callable
from typing import TYPE_CHECKING

from frontline.policy.models import GuardrailFlag

if TYPE_CHECKING:
    from frontline.policy.runtime import Policy

PRICE_PATTERN = re.compile(r"\$\d+(?:,\d{3})*(?:\.\d{2})?|\b\d+(?:\.\d{2})?\s*dollars?\b", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"(?:\+?1[-.\s]?)?\(?\b\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")
URL_PATTERN = re.compile(r"https?://[^\s]+", re.IGNORECASE)
APOLOGY_PATTERN = re.compile(r"\b(sorry|apologize|apologies)\b", re.IGNORECASE)
MEDICAL_PATTERN = re.compile(
    r"\b(diagnose|diagnosis|prescription|prescribe|treat|treatment|medicine|medication)\b",
    re.IGNORECASE,
)
LEGAL_PATTERN = re.compile(
    r"\b(sue|lawsuit|lawyer|attorney|legal action|liability|liable)\b",
    re.IGNORECASE,
)

PRICE_PLACEHOLDER = "[contact us for pricing]"
PHONE_PLACEHOLDER = "[contact information]"
URL_PLACEHOLDER = "[website link removed]"
MEDICAL_PLACEHOLDER = "[consult a professional]"
LEGAL_PLACEHOLDER = "[consult legal counsel]"

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def normalize_price(text: str) -> str:
    """Canonical amount for comparison: ``$1,250.00`` and ``1250 dollars`` -> ``1250``."""
    amount = re.sub(r"[^\d.]", "", text.lower().replace("dollars", "").replace("dollar", ""))
    if amount.endswith(".00"):
        amount = amount[:-3]
    return amount


def normalize_phone(text: str) -> str:
    """Last ten digits, so +1 and formatting differences compare equal."""
    return re.sub(r"\D", "", text)[-10:]


def _strip_prices(text: str, policy: "Policy") -> str:
    def replace(found: re.Match[str]) -> str:
        if normalize_price(found.group(0)) in policy.approved_prices:
            return found.group(0)
        return PRICE_PLACEHOLDER

    return PRICE_PATTERN.sub(replace, text)


def _strip_phones(text: str, policy: "Policy") -> str:
    def replace(found: re.Match[str]) -> str:
        if normalize_phone(found.group(0)) in policy.approved_phones:
            return found.group(0)
        return PHONE_PLACEHOLDER

    return PHONE_PATTERN.sub(replace, text)


def _strip_urls(text: str, policy: "Policy") -> str:  # noqa: ARG001
    return URL_PATTERN.sub(URL_PLACEHOLDER, text)


def _single_apology(text: str, policy: "Policy") -> str:  # noqa: ARG001
    """Keep the first sentence that apologizes, drop later ones."""
    sentences = _SENTENCE_SPLIT.split(text)
    kept: list[str] = []
    apologized = False
    for sentence in sentences:
        if APOLOGY_PATTERN.search(sentence):
            if apologized:
                continue
            apologized = True
        kept.append(sentence)
    if len(kept) == len(sentences):
        return text
    return " ".join(kept)


def _strip_medical(text: str, policy: "Policy") -> str:  # noqa: ARG001
    return MEDICAL_PATTERN.sub(MEDICAL_PLACEHOLDER, text)


def _strip_legal(text: str, policy: "Policy") -> str:  # noqa: ARG001
    return LEGAL_PATTERN.sub(LEGAL_PLACEHOLDER, text)


GUARDRAILS: dict[GuardrailFlag, Callable[[str, "Policy"], str]] = {
    GuardrailFlag.NO_PRICES: _strip_prices,
    GuardrailFlag.NO_PHONE_NUMBERS: _strip_phones,
    GuardrailFlag.NO_URLS: _strip_urls,
    GuardrailFlag.MAX_ONE_APOLOGY: _single_apology,
    GuardrailFlag.NO_MEDICAL_ADVICE: _strip_medical,
    GuardrailFlag.NO_LEGAL_ADVICE: _strip_legal,
}


def apply_guardrails(text: str, policy: "Policy") -> tuple[str, list[GuardrailFlag]]:
    """Run every enabled guardrail in a fixed order.

    Returns:
        The rewritten text and the flags that changed it
    """
    fired: list[GuardrailFlag] = []
    for flag, rewrite in GUARDRAILS.items():
        if flag not in policy.guardrails:
            continue
        rewritten = rewrite(text, policy)
        if rewritten != text:
            fired.append(flag)
            text = rewritten
    return text, fired
