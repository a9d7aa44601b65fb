"""
API-specific response models for FastAPI endpoints.

These wrap the core domain models with the ``success``/``timestamp``
envelope every response carries. Field names are camelCase on the wire.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from classification_proxy.models.quota_models import QuotaSnapshot, TierLimits


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Envelope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Response timestamp (UTC)"
    )


class AuthResponse(_Envelope):
    """Response for anonymous identity issuance."""

    user_id: str = Field(description="Anonymous identity id")
    token: str = Field(
        description="Bearer token, including the 'Bearer ' prefix",
        examples=["Bearer 3f2a..."]
    )
    expires_at: datetime = Field(description="When the identity is swept")


class QuotaResponse(_Envelope):
    """Response for quota introspection."""

    quota: QuotaSnapshot
    tier: TierLimits


class StatsResponse(_Envelope):
    """Component statistics."""

    cache: dict[str, Any]
    quota: dict[str, Any]
    auth: dict[str, Any]
    classifier: dict[str, Any]
    background_tasks: int


class HealthResponse(_Envelope):
    """Response for health check endpoint."""

    status: str = Field(
        description="Overall health status",
        examples=["healthy", "degraded"]
    )
    version: str = Field(description="Service version", examples=["0.1.0"])
    provider_reachable: bool = Field(description="Completion provider answered its models listing")
    circuit_breaker: str = Field(
        description="Circuit breaker state",
        examples=["closed", "open", "half_open"]
    )


class ErrorResponse(BaseModel):
    """Standard error response format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = False
    error: str = Field(
        description="Error code",
        examples=["INVALID_REQUEST", "INVALID_AUTH", "QUOTA_EXCEEDED"]
    )
    message: str = Field(description="Human-readable error message")
    details: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional error details (e.g., retryAfterMs)"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Error timestamp (UTC)"
    )
