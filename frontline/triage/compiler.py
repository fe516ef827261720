"""Rule compiler: merges rule sources into one cached, ordered rule set."""

from uuid import UUID

from pydantic import ValidationError

from frontline.cache.base import ArtifactCache
from frontline.config.models.triage import TriageConfig
from frontline.errors import CacheError, RuleCompilationError
from frontline.models import utc_now
from frontline.observability.logging import get_logger
from frontline.observability.metrics import RULE_CACHE
from frontline.triage.models import CompiledRuleSet, FallbackRule, Rule, RuleSource
from frontline.triage.store import RuleStore

logger = get_logger(__name__)


class RuleCompiler:
    """Builds a tenant's CompiledRuleSet and keeps it in the artifact cache.

    Sources, in no particular order: active manual rules, rules from active
    triage cards, and one synthesized catch-all. The merged list is sorted
    by priority desc, then source rank desc (MANUAL > GENERATED > SYSTEM),
    then updated_at desc. The sort is stable, so full ties keep store order.

    A store failure is fatal to the caller. Cache failures only cost a
    rebuild.
    """

    def __init__(
        self,
        store: RuleStore,
        cache: ArtifactCache,
        config: TriageConfig | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._config = config or TriageConfig()

    def cache_key(self, tenant_id: UUID) -> str:
        return f"{self._config.cache_key_prefix}:{tenant_id}"

    async def compile(self, tenant_id: UUID) -> CompiledRuleSet:
        """Return the tenant's rule set, from cache when possible.

        Raises:
            RuleCompilationError: If the rule store cannot be read
        """
        cached = await self._read_cache(tenant_id)
        if cached is not None:
            return cached

        rule_set = await self._build(tenant_id)
        await self._write_cache(rule_set)
        return rule_set

    async def invalidate(self, tenant_id: UUID) -> None:
        """Drop the tenant's cached rule set. Idempotent; never raises."""
        try:
            removed = await self._cache.delete(self.cache_key(tenant_id))
        except CacheError as e:
            # The TTL still bounds staleness
            logger.warning(
                "rule_cache_invalidate_failed",
                tenant_id=str(tenant_id),
                error=str(e),
            )
            return
        logger.info("rule_cache_invalidated", tenant_id=str(tenant_id), removed=removed)

    async def _read_cache(self, tenant_id: UUID) -> CompiledRuleSet | None:
        key = self.cache_key(tenant_id)
        try:
            payload = await self._cache.get(key)
        except CacheError as e:
            RULE_CACHE.labels(artifact="rules", outcome="error").inc()
            logger.warning("rule_cache_read_failed", tenant_id=str(tenant_id), error=str(e))
            return None

        if payload is None:
            RULE_CACHE.labels(artifact="rules", outcome="miss").inc()
            return None

        try:
            rule_set = CompiledRuleSet.model_validate_json(payload)
        except ValidationError as e:
            RULE_CACHE.labels(artifact="rules", outcome="error").inc()
            logger.warning("rule_cache_payload_invalid", tenant_id=str(tenant_id), error=str(e))
            return None

        RULE_CACHE.labels(artifact="rules", outcome="hit").inc()
        return rule_set

    async def _write_cache(self, rule_set: CompiledRuleSet) -> None:
        try:
            await self._cache.set(
                self.cache_key(rule_set.tenant_id),
                rule_set.model_dump_json().encode(),
                self._config.cache_ttl_seconds,
            )
        except CacheError as e:
            logger.warning(
                "rule_cache_write_failed",
                tenant_id=str(rule_set.tenant_id),
                error=str(e),
            )

    async def _build(self, tenant_id: UUID) -> CompiledRuleSet:
        try:
            manual_rules = await self._store.list_manual_rules(tenant_id)
            cards = await self._store.list_cards(tenant_id)
        except Exception as e:  # noqa: BLE001
            logger.error("rule_store_unavailable", tenant_id=str(tenant_id), error=str(e))
            raise RuleCompilationError(tenant_id, str(e)) from e

        compiled_at = utc_now()
        rules: list[Rule] = [rule.to_rule() for rule in manual_rules if rule.is_active]
        manual_count = len(rules)

        response_pools: dict[str, list[str]] = {}
        for card in cards:
            if not card.is_active:
                continue
            rules.extend(card.to_rules())
            if card.responses:
                response_pools.setdefault(card.category_slug, []).extend(card.responses)

        fallback = FallbackRule(
            action=self._config.fallback_action,
            priority=self._config.fallback_priority,
        ).to_rule(compiled_at)
        rules.append(fallback)
        rules.sort(key=Rule.sort_key)

        rule_set = CompiledRuleSet(
            tenant_id=tenant_id,
            rules=tuple(rules),
            response_pools=response_pools,
            compiled_at=compiled_at,
            source_counts={
                RuleSource.MANUAL.value: manual_count,
                RuleSource.GENERATED.value: len(rules) - manual_count - 1,
                RuleSource.SYSTEM.value: 1,
            },
        )
        logger.info(
            "rule_set_compiled",
            tenant_id=str(tenant_id),
            rule_count=len(rule_set),
            source_counts=rule_set.source_counts,
            categories=sorted(response_pools),
        )
        return rule_set
