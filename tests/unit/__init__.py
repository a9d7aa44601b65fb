"""
Unit tests for the Classification Proxy.

Test individual components in isolation:
- Result cache (keys, TTL, LRU, inflight registry)
- Quota limiter (daily and burst windows, downgrade)
- Fingerprint auth (issuance cap, token validation, sweeps)
- Classifier (prompt, positional parse, fail-open, circuit breaker)
- Orchestrator (composition, dedup, request budget)
"""
