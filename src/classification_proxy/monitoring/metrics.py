"""Custom Prometheus metrics for the Classification Proxy.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- classifier_failed_open_total (provider outages silently allow content)
- circuit_breaker_state (breaker stuck open)
- quota_rejections_total (abuse or undersized tiers)
- fingerprint_rejections_total (identity farming)
"""

from prometheus_client import Counter, Gauge, Histogram

# === Cache Metrics ===

cache_lookups_total = Counter(
    "cache_lookups_total",
    "Result cache lookups by outcome",
    ["outcome"],
)
"""
Cache lookups by outcome.

Labels:
- outcome: hit, miss, expired

Hit ratio = hit / (hit + miss + expired). A falling ratio usually means
preference churn or a TTL that is too short.
"""

cache_evictions_total = Counter(
    "cache_evictions_total",
    "Result cache entries removed by reason",
    ["reason"],
)
"""
Labels:
- reason: lru (capacity), ttl (sweep)
"""

inflight_dedup_total = Counter(
    "inflight_dedup_total",
    "Cache misses that attached to an existing inflight classification",
)

# === Classifier Metrics ===

classifier_batches_total = Counter(
    "classifier_batches_total",
    "Classifier batch calls by outcome",
    ["outcome"],
)
"""
Labels:
- outcome: success, failed_open, short_circuit
"""

classifier_failed_open_total = Counter(
    "classifier_failed_open_total",
    "Items returned as fail-open ALLOW by error code",
    ["error_code"],
)
"""
Alert thresholds:
- WARN: > 1% of classified items
- CRITICAL: > 10% of classified items
"""

classifier_labels_total = Counter(
    "classifier_labels_total",
    "Fresh labels produced by the classifier",
    ["label"],
)

classifier_line_mismatch_total = Counter(
    "classifier_line_mismatch_total",
    "Provider responses whose line count did not match the batch size",
    ["kind"],
)
"""
Labels:
- kind: shortfall (backfilled ALLOW), surplus (ignored)
"""

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
)

# === Quota Metrics ===

quota_rejections_total = Counter(
    "quota_rejections_total",
    "Classify requests rejected by the quota limiter",
    ["reason", "tier"],
)

quota_downgrades_total = Counter(
    "quota_downgrades_total",
    "Classify requests partially served after a quota downgrade",
    ["tier"],
)

# === Identity Metrics ===

identities_issued_total = Counter(
    "identities_issued_total",
    "Anonymous identities issued",
)

fingerprint_rejections_total = Counter(
    "fingerprint_rejections_total",
    "Identity issuance rejected by the per-fingerprint cap",
)

# === LLM Performance Metrics ===

llm_latency_seconds = Histogram(
    "llm_latency_seconds",
    "LLM generation latency in seconds",
    ["model", "success"],
    buckets=[0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)
"""
LLM generation latency histogram.

Buckets tuned for short label-only completions bounded by a 30s timeout.

Alert thresholds:
- WARN: p95 > 5s (request budget is 8s)
"""

llm_tokens_total = Counter(
    "llm_tokens_total",
    "Total tokens consumed by model and type",
    ["model", "token_type"],
)
"""
Labels:
- model: Model name
- token_type: prompt (input tokens), completion (output tokens)

Used for cost estimation and capacity planning.
"""

# === Request Metrics ===

classify_requests_total = Counter(
    "classify_requests_total",
    "Classify requests by final status",
    ["status"],
)

classify_duration_seconds = Histogram(
    "classify_duration_seconds",
    "Classify request duration in seconds",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 8.0, 10.0],
)
