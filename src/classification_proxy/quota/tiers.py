"""Tier definitions for the quota limiter."""

from dataclasses import dataclass

from classification_proxy.models.enums import Tier


@dataclass(frozen=True)
class TierConfig:
    """Daily quota and per-window burst limit for one tier."""

    daily_quota: int
    burst_limit: int
    description: str = ""

    def __post_init__(self) -> None:
        if self.daily_quota < 1:
            raise ValueError("daily_quota must be >= 1")
        if self.burst_limit < 1:
            raise ValueError("burst_limit must be >= 1")


DEFAULT_TIERS: dict[Tier, TierConfig] = {
    Tier.FREE: TierConfig(daily_quota=1_000, burst_limit=50, description="Free tier"),
    Tier.PRO: TierConfig(daily_quota=50_000, burst_limit=500, description="Pro tier"),
    Tier.ENTERPRISE: TierConfig(
        daily_quota=500_000, burst_limit=5_000, description="Enterprise tier"
    ),
}
