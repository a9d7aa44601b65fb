"""
Quota data models.

QuotaState is the mutable per-identity record owned by QuotaLimiter.
The pydantic models are immutable views handed back to callers.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from classification_proxy.models.enums import ErrorCode, Tier


@dataclass
class QuotaState:
    """
    Per-identity usage counters.

    All timestamps are epoch seconds from the limiter's clock. Reset fields
    roll forward lazily once the clock crosses them.
    """

    identity_id: str
    tier: Tier
    daily_used: int
    daily_reset_at: float
    burst_used: int
    burst_reset_at: float
    created_at: float
    last_access_at: float


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class TierLimits(_WireModel):
    """Limits for one tier."""

    tier: Tier
    daily_quota: int
    burst_limit: int
    burst_window_ms: int
    description: str = ""


class QuotaDecision(_WireModel):
    """Verdict of a non-mutating quota check."""

    allowed: bool
    reason: Optional[ErrorCode] = None
    retry_after_ms: Optional[int] = None
    daily_remaining: int
    burst_remaining: int
    reset_at: Optional[datetime] = None


class QuotaUsage(_WireModel):
    """Daily usage after an increment, as reported on classify responses."""

    used: int
    limit: int
    remaining: int
    reset_at: datetime


class WindowUsage(_WireModel):
    """Usage within one window (daily or burst)."""

    limit: int
    used: int
    remaining: int
    percent_used: float
    reset_at: datetime
    reset_in_ms: int


class QuotaSnapshot(_WireModel):
    """Full quota introspection for one identity."""

    identity_id: str
    tier: Tier
    daily: WindowUsage
    burst: WindowUsage


class QuotaReport(_WireModel):
    """Quota snapshot plus the limits of the tier it was evaluated under."""

    quota: QuotaSnapshot
    limits: TierLimits
