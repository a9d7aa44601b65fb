"""
Content Classification Proxy.

Classifies batches of short text items as ALLOW or BLOCK under a free-text
user preference, in front of a chat-completion provider:
- Preference-aware result cache with inflight deduplication
- Tiered daily quota and burst limiting
- Circuit-breaker-protected batch classification that fails open
- Anonymous identities with a per-device issuance cap

Architecture: FastAPI surface + in-process orchestrator + httpx provider client
"""

__version__ = "0.1.0"
