"""
Quota and burst limiting.

- tiers.py: tier limits (free, pro, enterprise)
- limiter.py: per-identity QuotaLimiter
"""

from classification_proxy.quota.limiter import QuotaLimiter
from classification_proxy.quota.tiers import DEFAULT_TIERS, TierConfig

__all__ = ["DEFAULT_TIERS", "QuotaLimiter", "TierConfig"]
