"""
Enumerations for Classification Proxy data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class Label(str, Enum):
    """
    Classification label for a single content item.

    ALLOW is the permissive outcome and the fail-open default.
    """

    ALLOW = "ALLOW"
    BLOCK = "BLOCK"


class ResultSource(str, Enum):
    """Where a classification label came from."""

    CACHE = "cache"
    FRESH = "fresh"
    FAILED_OPEN = "failed_open"


class Tier(str, Enum):
    """Quota tier. Limits per tier live in quota.tiers."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class ErrorCode(str, Enum):
    """Request-level error codes returned to clients."""

    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_AUTH = "INVALID_AUTH"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    BURST_LIMIT_EXCEEDED = "BURST_LIMIT_EXCEEDED"
    FINGERPRINT_LIMIT_EXCEEDED = "FINGERPRINT_LIMIT_EXCEEDED"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ProviderErrorCode(str, Enum):
    """
    Reasons a classification failed open.

    These never surface as request failures; they ride along on the
    degraded per-item results.
    """

    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    PROVIDER_NETWORK_ERROR = "PROVIDER_NETWORK_ERROR"
    PROVIDER_STATUS_ERROR = "PROVIDER_STATUS_ERROR"
    PROVIDER_MALFORMED_RESPONSE = "PROVIDER_MALFORMED_RESPONSE"
    PROVIDER_CREDENTIAL_MISSING = "PROVIDER_CREDENTIAL_MISSING"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    CIRCUIT_OPEN = "CIRCUIT_OPEN"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
