"""
Unit tests for API response models and wire serialization.
"""

from datetime import datetime, timezone

from classification_proxy.api.models import AuthResponse, ErrorResponse, HealthResponse
from classification_proxy.models.classification_models import (
    ClassificationResult,
    ClassifyResponse,
    ClassifyStats,
)
from classification_proxy.models.enums import Label, ProviderErrorCode, ResultSource
from classification_proxy.models.quota_models import QuotaUsage

RESET_AT = datetime(2026, 3, 11, 0, 0, tzinfo=timezone.utc)


def test_auth_response_camel_case():
    """Test AuthResponse serializes with camelCase keys."""
    response = AuthResponse(user_id="abc", token="Bearer xyz", expires_at=RESET_AT)

    data = response.model_dump(mode="json", by_alias=True)

    assert data["success"] is True
    assert data["userId"] == "abc"
    assert data["token"] == "Bearer xyz"
    assert data["expiresAt"] == "2026-03-11T00:00:00Z"
    assert "timestamp" in data


def test_health_response():
    """Test HealthResponse model."""
    response = HealthResponse(
        status="degraded",
        version="0.1.0",
        provider_reachable=False,
        circuit_breaker="open",
    )

    data = response.model_dump(by_alias=True)

    assert data["providerReachable"] is False
    assert data["circuitBreaker"] == "open"
    assert isinstance(response.timestamp, datetime)


def test_error_response():
    """Test ErrorResponse model."""
    error = ErrorResponse(error="QUOTA_EXCEEDED", message="Daily quota exceeded", details={"retryAfterMs": 1000})

    data = error.model_dump(mode="json", by_alias=True, exclude_none=True)

    assert data["success"] is False
    assert data["error"] == "QUOTA_EXCEEDED"
    assert data["details"] == {"retryAfterMs": 1000}


def test_error_response_without_details():
    error = ErrorResponse(error="INVALID_AUTH", message="Missing or invalid authorization token")

    assert "details" not in error.model_dump(by_alias=True, exclude_none=True)


class TestResultWire:
    def test_fresh(self):
        result = ClassificationResult(hash="abcde", label=Label.BLOCK, source=ResultSource.FRESH)

        assert result.to_wire() == {"hash": "abcde", "label": "BLOCK", "cached": False}

    def test_cached(self):
        result = ClassificationResult(hash="abcde", label=Label.ALLOW, source=ResultSource.CACHE)

        assert result.to_wire()["cached"] is True

    def test_failed_open(self):
        result = ClassificationResult.fail_open("abcde", ProviderErrorCode.CIRCUIT_OPEN)

        assert result.to_wire() == {
            "hash": "abcde",
            "label": "ALLOW",
            "cached": False,
            "failedOpen": True,
            "error": "CIRCUIT_OPEN",
        }


class TestClassifyResponseWire:
    def make_response(self, requested=2):
        results = [
            ClassificationResult(hash="aaaaa", label=Label.ALLOW, source=ResultSource.CACHE),
            ClassificationResult(hash="bbbbb", label=Label.BLOCK, source=ResultSource.FRESH),
        ]
        return ClassifyResponse(
            results=results,
            quota=QuotaUsage(used=10, limit=1000, remaining=990, reset_at=RESET_AT),
            stats=ClassifyStats(total=2, cached=1, classified=1, duration_ms=42),
            requested=requested,
            timestamp=RESET_AT,
        )

    def test_shape(self):
        data = self.make_response().to_wire()

        assert data["success"] is True
        assert [c["hash"] for c in data["classifications"]] == ["aaaaa", "bbbbb"]
        assert data["quota"] == {
            "used": 10,
            "limit": 1000,
            "remaining": 990,
            "resetAt": "2026-03-11T00:00:00Z",
        }
        assert data["stats"] == {
            "total": 2,
            "cached": 1,
            "classified": 1,
            "failedOpen": 0,
            "durationMs": 42,
        }
        assert "downgraded" not in data

    def test_downgraded(self):
        response = self.make_response(requested=5)

        assert response.downgraded is True
        assert response.to_wire()["downgraded"] == {"requested": 5, "served": 2}
