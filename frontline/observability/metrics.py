"""Prometheus metrics for Frontline."""

from prometheus_client import Counter, Histogram

TURNS = Counter(
    "frontline_turns_total",
    "Call turns processed, by final action",
    labelnames=["tenant_id", "action"],
)

STAGE_LATENCY = Histogram(
    "frontline_stage_latency_seconds",
    "Latency of individual turn pipeline stages",
    labelnames=["stage"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

STAGE_FAILURES = Counter(
    "frontline_stage_failures_total",
    "Pipeline stages that raised and were skipped",
    labelnames=["stage"],
)

POLICY_LATENCY = Histogram(
    "frontline_policy_latency_seconds",
    "Wall time of one policy apply",
    labelnames=["tenant_id"],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.015, 0.025, 0.05, 0.1),
)

POLICY_BUDGET_OVERRUNS = Counter(
    "frontline_policy_budget_overruns_total",
    "Policy applies that exceeded the soft budget",
    labelnames=["tenant_id", "severity"],
)

SECURITY_VIOLATIONS = Counter(
    "frontline_security_violations_total",
    "Blocked unauthorized actions",
    labelnames=["tenant_id", "violation"],
)

RULE_CACHE = Counter(
    "frontline_rule_cache_total",
    "Compiled artifact cache lookups",
    labelnames=["artifact", "outcome"],
)

LLM_TOKENS = Counter(
    "frontline_llm_tokens_total",
    "Language-model tokens consumed",
    labelnames=["model", "direction"],
)

LLM_COST = Counter(
    "frontline_llm_cost_usd_total",
    "Estimated language-model spend in USD",
    labelnames=["model"],
)
