"""Monitoring and metrics instrumentation for the Classification Proxy.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from classification_proxy.monitoring.metrics import (
    cache_evictions_total,
    cache_lookups_total,
    circuit_breaker_state,
    classifier_batches_total,
    classifier_failed_open_total,
    classifier_labels_total,
    classifier_line_mismatch_total,
    classify_duration_seconds,
    classify_requests_total,
    fingerprint_rejections_total,
    identities_issued_total,
    inflight_dedup_total,
    llm_latency_seconds,
    llm_tokens_total,
    quota_downgrades_total,
    quota_rejections_total,
)

__all__ = [
    "cache_lookups_total",
    "cache_evictions_total",
    "inflight_dedup_total",
    "classifier_batches_total",
    "classifier_failed_open_total",
    "classifier_labels_total",
    "classifier_line_mismatch_total",
    "circuit_breaker_state",
    "quota_rejections_total",
    "quota_downgrades_total",
    "identities_issued_total",
    "fingerprint_rejections_total",
    "llm_latency_seconds",
    "llm_tokens_total",
    "classify_requests_total",
    "classify_duration_seconds",
]
