"""
Request-level exceptions.

Each carries the client-facing error code and HTTP status. The API layer
maps them to JSON error bodies in api/error_handlers.py. Provider failures
are not represented here: the classifier absorbs them into fail-open
results.
"""

from typing import Any, Optional

from classification_proxy.models.enums import ErrorCode


class ProxyError(Exception):
    """Base exception for all request-level failures."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidRequestError(ProxyError):
    """Payload failed shape or limit validation. Raised before any side effect."""

    code = ErrorCode.INVALID_REQUEST
    status_code = 400


class InvalidAuthError(ProxyError):
    """Missing, malformed or unknown bearer token."""

    code = ErrorCode.INVALID_AUTH
    status_code = 401


class QuotaExceededError(ProxyError):
    """Daily quota exhausted and no downgrade possible."""

    code = ErrorCode.QUOTA_EXCEEDED
    status_code = 429


class BurstLimitExceededError(ProxyError):
    """Burst window exhausted and no downgrade possible."""

    code = ErrorCode.BURST_LIMIT_EXCEEDED
    status_code = 429


class FingerprintLimitExceededError(ProxyError):
    """Too many active identities already issued for one fingerprint."""

    code = ErrorCode.FINGERPRINT_LIMIT_EXCEEDED
    status_code = 429
