"""
Tiered quota and burst rate limiting.

Each identity gets a daily quota that resets at a fixed UTC hour and a
burst allowance over a rolling window that starts at the first use after
the previous window expired. Both windows roll forward lazily: every
operation first zeroes any counter whose reset time has passed.

The limiter is deliberately split into a non-mutating check and a mutating
increment. Callers check before doing work and increment once the work has
been served; the limiter does not deduplicate increments.
"""

import math
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import structlog

from classification_proxy.models.enums import ErrorCode, Tier
from classification_proxy.models.quota_models import (
    QuotaDecision,
    QuotaSnapshot,
    QuotaState,
    QuotaUsage,
    TierLimits,
    WindowUsage,
)
from classification_proxy.quota.tiers import DEFAULT_TIERS, TierConfig

logger = structlog.get_logger(__name__)


def _to_datetime(epoch_seconds: float) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


def _to_ms(seconds: float) -> int:
    return max(0, int(math.ceil(seconds * 1000)))


class QuotaLimiter:
    """
    Per-identity daily quota and burst limiter.

    State lives in process memory, keyed by identity id. All methods are
    synchronous; under a single event loop no locking is needed because no
    method suspends between reading and writing a state record.
    """

    def __init__(
        self,
        tiers: Optional[dict[Tier, TierConfig]] = None,
        default_tier: Tier = Tier.FREE,
        burst_window_seconds: float = 60.0,
        reset_hour_utc: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the limiter.

        Args:
            tiers: Limits per tier (defaults to DEFAULT_TIERS)
            default_tier: Tier used when a caller passes None
            burst_window_seconds: Length of the rolling burst window
            reset_hour_utc: Hour of day (UTC) at which daily quotas reset
            clock: Wall-clock time source in epoch seconds
        """
        if not 0 <= reset_hour_utc <= 23:
            raise ValueError("reset_hour_utc must be between 0 and 23")
        self.tiers = dict(tiers or DEFAULT_TIERS)
        if default_tier not in self.tiers:
            raise ValueError(f"Default tier {default_tier} has no limits configured")
        self.default_tier = default_tier
        self.burst_window_seconds = burst_window_seconds
        self.reset_hour_utc = reset_hour_utc
        self._clock = clock
        self._states: dict[str, QuotaState] = {}

        logger.info(
            "QuotaLimiter initialized",
            tiers=[t.value for t in self.tiers],
            default_tier=default_tier.value,
            burst_window_seconds=burst_window_seconds,
            reset_hour_utc=reset_hour_utc,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_tier(self, tier: Optional[Tier | str]) -> Tier:
        if tier is None:
            return self.default_tier
        try:
            resolved = Tier(tier)
        except ValueError:
            return self.default_tier
        return resolved if resolved in self.tiers else self.default_tier

    def tier_config(self, tier: Optional[Tier | str]) -> TierConfig:
        return self.tiers[self._resolve_tier(tier)]

    def next_daily_reset(self, now: float) -> float:
        """Next occurrence of the reset hour strictly after ``now``."""
        current = _to_datetime(now)
        boundary = current.replace(hour=self.reset_hour_utc, minute=0, second=0, microsecond=0)
        if boundary <= current:
            boundary += timedelta(days=1)
        return boundary.timestamp()

    def _state(self, identity_id: str, tier: Tier, now: float) -> QuotaState:
        state = self._states.get(identity_id)
        if state is None:
            state = QuotaState(
                identity_id=identity_id,
                tier=tier,
                daily_used=0,
                daily_reset_at=self.next_daily_reset(now),
                burst_used=0,
                burst_reset_at=now + self.burst_window_seconds,
                created_at=now,
                last_access_at=now,
            )
            self._states[identity_id] = state
        else:
            state.tier = tier
        state.last_access_at = now
        return state

    def _roll_forward(self, state: QuotaState, now: float) -> None:
        # Each new reset time lies strictly in the future, so repeated calls
        # at the same instant reset at most once.
        if now >= state.daily_reset_at:
            state.daily_used = 0
            state.daily_reset_at = self.next_daily_reset(now)
        if now >= state.burst_reset_at:
            state.burst_used = 0
            state.burst_reset_at = now + self.burst_window_seconds

    def _load(self, identity_id: str, tier: Optional[Tier | str]) -> tuple[QuotaState, TierConfig, float]:
        resolved = self._resolve_tier(tier)
        now = self._clock()
        state = self._state(identity_id, resolved, now)
        self._roll_forward(state, now)
        return state, self.tiers[resolved], now

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def check_limit(
        self, identity_id: str, tier: Optional[Tier | str] = None, count: int = 1
    ) -> QuotaDecision:
        """
        Check whether ``count`` more items fit in both windows.

        Does not consume quota. The daily quota is evaluated first, so a
        request failing both reports QUOTA_EXCEEDED.
        """
        state, config, now = self._load(identity_id, tier)
        daily_remaining = max(0, config.daily_quota - state.daily_used)
        burst_remaining = max(0, config.burst_limit - state.burst_used)

        if state.daily_used + count > config.daily_quota:
            return QuotaDecision(
                allowed=False,
                reason=ErrorCode.QUOTA_EXCEEDED,
                retry_after_ms=_to_ms(state.daily_reset_at - now),
                daily_remaining=daily_remaining,
                burst_remaining=burst_remaining,
                reset_at=_to_datetime(state.daily_reset_at),
            )

        if state.burst_used + count > config.burst_limit:
            return QuotaDecision(
                allowed=False,
                reason=ErrorCode.BURST_LIMIT_EXCEEDED,
                retry_after_ms=_to_ms(state.burst_reset_at - now),
                daily_remaining=daily_remaining,
                burst_remaining=burst_remaining,
                reset_at=_to_datetime(state.burst_reset_at),
            )

        return QuotaDecision(
            allowed=True,
            daily_remaining=daily_remaining - count,
            burst_remaining=burst_remaining - count,
            reset_at=_to_datetime(state.daily_reset_at),
        )

    def increment_usage(
        self, identity_id: str, tier: Optional[Tier | str] = None, count: int = 1
    ) -> QuotaUsage:
        """
        Consume ``count`` from both windows.

        Invoke exactly once per served request. Concurrent requests can both
        pass check_limit before either increments; the overshoot is clamped
        at the limit so counters never exceed it.
        """
        if count < 0:
            raise ValueError("count must be >= 0")
        state, config, _ = self._load(identity_id, tier)

        daily_after = state.daily_used + count
        burst_after = state.burst_used + count
        if daily_after > config.daily_quota or burst_after > config.burst_limit:
            logger.warning(
                "Quota increment overshoot clamped",
                identity_id=identity_id,
                tier=state.tier.value,
                count=count,
                daily_used=state.daily_used,
                burst_used=state.burst_used,
            )
        state.daily_used = min(daily_after, config.daily_quota)
        state.burst_used = min(burst_after, config.burst_limit)

        return QuotaUsage(
            used=state.daily_used,
            limit=config.daily_quota,
            remaining=max(0, config.daily_quota - state.daily_used),
            reset_at=_to_datetime(state.daily_reset_at),
        )

    def downgrade_request(
        self, identity_id: str, requested_count: int, tier: Optional[Tier | str] = None
    ) -> Optional[int]:
        """
        Largest batch that still fits, or None if nothing remains.

        Lets an over-quota batch be partially served rather than rejected.
        """
        state, config, _ = self._load(identity_id, tier)
        daily_remaining = max(0, config.daily_quota - state.daily_used)
        burst_remaining = max(0, config.burst_limit - state.burst_used)
        available = min(daily_remaining, burst_remaining)

        if available <= 0 or requested_count <= 0:
            return None
        return min(requested_count, available)

    def get_quota(self, identity_id: str, tier: Optional[Tier | str] = None) -> QuotaSnapshot:
        """Current daily and burst usage for one identity."""
        state, config, now = self._load(identity_id, tier)
        return QuotaSnapshot(
            identity_id=identity_id,
            tier=state.tier,
            daily=WindowUsage(
                limit=config.daily_quota,
                used=state.daily_used,
                remaining=max(0, config.daily_quota - state.daily_used),
                percent_used=round(state.daily_used / config.daily_quota * 100, 1),
                reset_at=_to_datetime(state.daily_reset_at),
                reset_in_ms=_to_ms(state.daily_reset_at - now),
            ),
            burst=WindowUsage(
                limit=config.burst_limit,
                used=state.burst_used,
                remaining=max(0, config.burst_limit - state.burst_used),
                percent_used=round(state.burst_used / config.burst_limit * 100, 1),
                reset_at=_to_datetime(state.burst_reset_at),
                reset_in_ms=_to_ms(state.burst_reset_at - now),
            ),
        )

    def get_tier_details(self, tier: Optional[Tier | str] = None) -> TierLimits:
        resolved = self._resolve_tier(tier)
        config = self.tiers[resolved]
        return TierLimits(
            tier=resolved,
            daily_quota=config.daily_quota,
            burst_limit=config.burst_limit,
            burst_window_ms=_to_ms(self.burst_window_seconds),
            description=config.description,
        )

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def reset_usage(self, identity_id: str) -> bool:
        """Zero an identity's daily usage and restart its daily window."""
        state = self._states.get(identity_id)
        if state is None:
            return False
        state.daily_used = 0
        state.daily_reset_at = self.next_daily_reset(self._clock())
        logger.info("Quota reset", identity_id=identity_id)
        return True

    def set_tier(self, identity_id: str, tier: Tier | str) -> QuotaState:
        """Move an identity to another tier, creating its state if needed."""
        try:
            resolved = Tier(tier)
        except ValueError:
            raise ValueError(f"Invalid tier: {tier}") from None
        if resolved not in self.tiers:
            raise ValueError(f"Invalid tier: {tier}")
        state = self._state(identity_id, resolved, self._clock())
        logger.info("Tier changed", identity_id=identity_id, tier=resolved.value)
        return state

    def sweep(self, max_idle_seconds: float = 7 * 24 * 3600.0) -> int:
        """Drop state for identities not seen within ``max_idle_seconds``."""
        now = self._clock()
        idle = [
            identity_id for identity_id, state in self._states.items()
            if now - state.last_access_at > max_idle_seconds
        ]
        for identity_id in idle:
            del self._states[identity_id]
        if idle:
            logger.info("Quota sweep removed idle identities", removed=len(idle))
        return len(idle)

    def stats(self) -> dict[str, Any]:
        by_tier: dict[str, int] = {}
        for state in self._states.values():
            by_tier[state.tier.value] = by_tier.get(state.tier.value, 0) + 1
        return {"tracked_identities": len(self._states), "by_tier": by_tier}
