"""Policy compiler: authored PolicyDocument -> cached CompiledPolicy.

Compilation drops disabled entries, orders edge cases and transfer rules by
priority (lower first), demotes the later of two conflicting entries,
builds pattern specs, collects approved prices and phone numbers, and
stamps the artifact with a SHA-256 checksum.
"""

import hashlib
import json
import re
from collections.abc import Iterable
from uuid import UUID

from pydantic import ValidationError

from frontline.cache.base import ArtifactCache
from frontline.config.models.policy import PolicyConfig
from frontline.errors import CacheError, PolicyCompilationError
from frontline.observability.logging import get_logger
from frontline.observability.metrics import RULE_CACHE
from frontline.policy.guardrails import PHONE_PATTERN, PRICE_PATTERN
from frontline.policy.models import (
    CompiledEdgeCase,
    CompiledPolicy,
    CompiledTransferRule,
    EdgeCaseActionKind,
    EdgeCaseDefinition,
    PolicyDocument,
    TransferRuleDefinition,
)
from frontline.policy.patterns import KeywordSetSpec, RegexSpec
from frontline.policy.runtime import Policy
from frontline.policy.store import PolicyStore

logger = get_logger(__name__)

BUILTIN_TRANSFER_PATTERNS: dict[str, tuple[str, ...]] = {
    "billing": ("billing", "bill", "invoice", "payment", "charge", "refund"),
    "emergency": ("emergency", "urgent", "gas leak", "flooding", "no heat", "fire", "smoke"),
    "scheduling": ("appointment", "schedule", "reschedule", "book", "cancel appointment"),
    "technical": ("not working", "broken", "error", "problem with", "stopped working"),
    "general": ("speak to someone", "talk to a person", "representative", "manager", "human"),
}

_WORD = re.compile(r"[a-z0-9']+")


def keyword_overlap(first: Iterable[str], second: Iterable[str]) -> float:
    """Jaccard similarity over the words longer than two characters."""
    left = {w for phrase in first for w in _WORD.findall(phrase.lower()) if len(w) > 2}
    right = {w for phrase in second for w in _WORD.findall(phrase.lower()) if len(w) > 2}
    if not left or not right:
        return 0.0
    return len(left & right) / len(left | right)


class PolicyCompiler:
    """Compiles, caches and loads tenant policies.

    Cache layout: ``{prefix}:{tenant}:v{version}:{checksum}`` keeps every
    published artifact, ``{prefix}:{tenant}:active`` holds the one in use.
    """

    def __init__(
        self,
        store: PolicyStore,
        cache: ArtifactCache,
        config: PolicyConfig | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._config = config or PolicyConfig()

    def active_key(self, tenant_id: UUID) -> str:
        return f"{self._config.cache_key_prefix}:{tenant_id}:active"

    def version_key(self, compiled: CompiledPolicy) -> str:
        return (
            f"{self._config.cache_key_prefix}:{compiled.tenant_id}"
            f":v{compiled.version}:{compiled.checksum}"
        )

    def compile(self, document: PolicyDocument) -> CompiledPolicy:
        """Compile an authored document.

        Raises:
            PolicyCompilationError: If an entry is malformed
        """
        warnings: list[str] = []
        edge_cases = self._compile_edge_cases(document.edge_cases, warnings)
        transfer_rules = self._compile_transfer_rules(document.transfer_rules, warnings)

        approved_prices = list(document.approved_prices)
        approved_phones = list(document.approved_phones)
        for value in document.variables.values():
            approved_prices.extend(m.group(0) for m in PRICE_PATTERN.finditer(value))
            approved_phones.extend(m.group(0) for m in PHONE_PATTERN.finditer(value))

        compiled = CompiledPolicy(
            tenant_id=document.tenant_id,
            version=document.version,
            edge_cases=tuple(edge_cases),
            transfer_rules=tuple(transfer_rules),
            allowed_actions=tuple(sorted({a.strip().upper() for a in document.allowed_actions})),
            guardrails=tuple(dict.fromkeys(document.guardrails)),
            behavior=tuple(dict.fromkeys(document.behavior)),
            approved_prices=tuple(dict.fromkeys(approved_prices)),
            approved_phones=tuple(dict.fromkeys(approved_phones)),
            company_name=document.company_name or document.variables.get("company_name"),
            handoff_message=document.handoff_message or self._config.handoff_message,
            warnings=tuple(warnings),
        )
        compiled = compiled.model_copy(update={"checksum": checksum(compiled)})

        for warning in warnings:
            logger.warning("policy_conflict_resolved", tenant_id=str(document.tenant_id), detail=warning)
        logger.info(
            "policy_compiled",
            tenant_id=str(document.tenant_id),
            version=compiled.version,
            checksum=compiled.checksum[:12],
            edge_cases=len(compiled.edge_cases),
            transfer_rules=len(compiled.transfer_rules),
        )
        return compiled

    async def publish(self, document: PolicyDocument) -> CompiledPolicy:
        """Compile a document and make it the tenant's active policy."""
        compiled = self.compile(document)
        await self._write(compiled)
        return compiled

    async def load_active(self, tenant_id: UUID) -> Policy | None:
        """Load the tenant's active policy, compiling from the store on a miss.

        Returns None when the tenant has no policy document.
        """
        compiled = await self._read_active(tenant_id)
        if compiled is None:
            document = await self._store.get_document(tenant_id)
            if document is None:
                logger.debug("policy_not_configured", tenant_id=str(tenant_id))
                return None
            compiled = self.compile(document)
            await self._write(compiled)
        return Policy(compiled)

    async def invalidate(self, tenant_id: UUID) -> None:
        """Forget the active policy. Idempotent; never raises."""
        try:
            await self._cache.delete(self.active_key(tenant_id))
        except CacheError as e:
            logger.warning("policy_cache_invalidate_failed", tenant_id=str(tenant_id), error=str(e))
            return
        logger.info("policy_cache_invalidated", tenant_id=str(tenant_id))

    async def _read_active(self, tenant_id: UUID) -> CompiledPolicy | None:
        try:
            payload = await self._cache.get(self.active_key(tenant_id))
        except CacheError as e:
            RULE_CACHE.labels(artifact="policy", outcome="error").inc()
            logger.warning("policy_cache_read_failed", tenant_id=str(tenant_id), error=str(e))
            return None
        if payload is None:
            RULE_CACHE.labels(artifact="policy", outcome="miss").inc()
            return None
        try:
            compiled = CompiledPolicy.model_validate_json(payload)
        except ValidationError as e:
            RULE_CACHE.labels(artifact="policy", outcome="error").inc()
            logger.warning("policy_cache_payload_invalid", tenant_id=str(tenant_id), error=str(e))
            return None
        RULE_CACHE.labels(artifact="policy", outcome="hit").inc()
        return compiled

    async def _write(self, compiled: CompiledPolicy) -> None:
        payload = compiled.model_dump_json().encode()
        ttl = self._config.cache_ttl_seconds
        try:
            await self._cache.set(self.version_key(compiled), payload, ttl)
            await self._cache.set(self.active_key(compiled.tenant_id), payload, ttl)
        except CacheError as e:
            logger.warning(
                "policy_cache_write_failed",
                tenant_id=str(compiled.tenant_id),
                error=str(e),
            )

    def _compile_edge_cases(
        self, definitions: list[EdgeCaseDefinition], warnings: list[str]
    ) -> list[CompiledEdgeCase]:
        entries: list[tuple[int, EdgeCaseDefinition]] = []
        for definition in definitions:
            if not definition.enabled:
                continue
            _validate_edge_case(definition)
            priority = (
                definition.priority
                if definition.priority is not None
                else self._config.default_priority
            )
            entries.append((priority, definition))
        entries.sort(key=lambda entry: entry[0])

        placed: list[tuple[int, EdgeCaseDefinition]] = []
        for priority, definition in entries:
            keywords = definition.match.keywords_any + definition.match.keywords_all
            while any(
                other_priority == priority
                and keyword_overlap(keywords, other.match.keywords_any + other.match.keywords_all)
                > self._config.conflict_threshold
                for other_priority, other in placed
            ):
                priority += 1
                warnings.append(
                    f"edge case '{definition.name}' overlaps an earlier edge case; "
                    f"demoted to priority {priority}"
                )
            placed.append((priority, definition))
        placed.sort(key=lambda entry: entry[0])

        return [
            CompiledEdgeCase(
                name=definition.name,
                priority=priority,
                patterns=tuple(_edge_case_patterns(definition)),
                min_spam_score=definition.match.min_spam_score,
                action=definition.action,
                side_effects=definition.side_effects,
            )
            for priority, definition in placed
        ]

    def _compile_transfer_rules(
        self, definitions: list[TransferRuleDefinition], warnings: list[str]
    ) -> list[CompiledTransferRule]:
        entries = sorted(
            (
                (
                    d.priority if d.priority is not None else self._config.default_priority,
                    d,
                )
                for d in definitions
                if d.enabled
            ),
            key=lambda entry: entry[0],
        )

        placed: list[tuple[int, TransferRuleDefinition]] = []
        for priority, definition in entries:
            while any(
                other_priority == priority and other.intent_tag == definition.intent_tag
                for other_priority, other in placed
            ):
                priority += 1
                warnings.append(
                    f"transfer rule '{definition.intent_tag}' duplicates an earlier rule; "
                    f"demoted to priority {priority}"
                )
            placed.append((priority, definition))
        placed.sort(key=lambda entry: entry[0])

        compiled: list[CompiledTransferRule] = []
        for priority, definition in placed:
            phrases = tuple(definition.patterns) or BUILTIN_TRANSFER_PATTERNS.get(
                definition.intent_tag, ()
            )
            patterns: list[KeywordSetSpec | RegexSpec] = []
            if phrases:
                patterns.append(KeywordSetSpec(any_of=tuple(p.lower() for p in phrases)))
            patterns.extend(_regex_specs(definition.regex_patterns, definition.intent_tag))
            if not patterns:
                raise PolicyCompilationError(
                    f"Transfer rule '{definition.intent_tag}' has no patterns and no built-in phrases"
                )
            compiled.append(
                CompiledTransferRule(
                    intent_tag=definition.intent_tag,
                    priority=priority,
                    patterns=tuple(patterns),
                    target=definition.target or definition.intent_tag,
                    message=definition.message,
                    after_hours_only=definition.after_hours_only,
                )
            )
        return compiled


def checksum(compiled: CompiledPolicy) -> str:
    """SHA-256 over the canonical JSON of the artifact's content."""
    content = compiled.model_dump(
        mode="json",
        exclude={"checksum", "compiled_at", "warnings"},
    )
    canonical = json.dumps(content, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()


def _validate_edge_case(definition: EdgeCaseDefinition) -> None:
    match = definition.match
    if not (match.keywords_any or match.keywords_all or match.regex_patterns) and (
        match.min_spam_score is None
    ):
        raise PolicyCompilationError(f"Edge case '{definition.name}' has no match criteria")
    if definition.action.kind == EdgeCaseActionKind.OVERRIDE_RESPONSE and not definition.action.response:
        raise PolicyCompilationError(
            f"Edge case '{definition.name}' overrides the response but defines none"
        )


def _edge_case_patterns(definition: EdgeCaseDefinition) -> list[KeywordSetSpec | RegexSpec]:
    patterns: list[KeywordSetSpec | RegexSpec] = []
    match = definition.match
    if match.keywords_any:
        patterns.append(KeywordSetSpec(any_of=tuple(k.lower() for k in match.keywords_any)))
    if match.keywords_all:
        patterns.append(KeywordSetSpec(all_of=tuple(k.lower() for k in match.keywords_all)))
    patterns.extend(_regex_specs(match.regex_patterns, definition.name))
    return patterns


def _regex_specs(expressions: list[str], owner: str) -> list[RegexSpec]:
    specs = []
    for expression in expressions:
        try:
            re.compile(expression)
        except re.error as e:
            raise PolicyCompilationError(f"Invalid pattern {expression!r} in '{owner}': {e}") from e
        specs.append(RegexSpec(pattern=expression))
    return specs
