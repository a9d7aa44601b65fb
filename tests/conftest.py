"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from datetime import datetime, timezone
from typing import Callable

import pytest
from pydantic import SecretStr

from classification_proxy.config import Settings
from classification_proxy.models.classification_models import ClassificationItem

# 2026-03-10T12:00:00Z
EPOCH_START = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc).timestamp()


class FakeClock:
    """Manually advanced clock, usable for both wall and monotonic time."""

    def __init__(self, start: float = EPOCH_START):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.CACHE_MAX_SIZE = 10
    """
    return Settings(
        # === Application ===
        APP_NAME="Classification Proxy (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Completion Provider ===
        MODEL_ENDPOINT="https://llm.test/v1/chat/completions",
        MODEL_NAME="test-model",
        MODEL_API_KEY=SecretStr("sk-test-000000001234"),
        MODEL_TIMEOUT=5.0,

        # === Feature Flags ===
        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
        ENABLE_MAINTENANCE_TASKS=False,
    )


@pytest.fixture
def make_items() -> Callable[..., list[ClassificationItem]]:
    """Factory for distinct classification items: make_items(3) -> hash00000..hash00002."""

    def _make(count: int, prefix: str = "hash", content: str = "some post text") -> list[ClassificationItem]:
        return [
            ClassificationItem(hash=f"{prefix}{i:05d}", content=f"{content} {i}")
            for i in range(count)
        ]

    return _make


@pytest.fixture
def make_payload() -> Callable[..., dict]:
    """Factory for raw classify payloads as a client would send them."""

    def _make(count: int = 2, prefix: str = "hash", preference: str | None = "no spoilers", **extra) -> dict:
        payload: dict = {
            "items": [
                {"hash": f"{prefix}{i:05d}", "content": f"post number {i}"}
                for i in range(count)
            ],
            **extra,
        }
        if preference is not None:
            payload["preference"] = preference
        return payload

    return _make
