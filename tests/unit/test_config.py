"""
Unit tests for environment-driven settings.
"""

import re

import pytest

from classification_proxy.config import Settings
from classification_proxy.main import origins_to_regex


def load_settings() -> Settings:
    return Settings(_env_file=None)


def test_defaults(monkeypatch):
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)

    config = load_settings()

    assert config.ALLOWED_ORIGINS == ["chrome-extension://*"]
    assert config.MAX_PAYLOAD_SIZE_BYTES == 100 * 1024
    assert config.MODEL_API_KEY is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("chrome-extension://*", ["chrome-extension://*"]),
        ("chrome-extension://*,https://example.com", ["chrome-extension://*", "https://example.com"]),
        (" https://a.test , https://b.test ,", ["https://a.test", "https://b.test"]),
    ],
)
def test_allowed_origins_from_comma_separated_env(monkeypatch, raw, expected):
    monkeypatch.setenv("ALLOWED_ORIGINS", raw)

    assert load_settings().ALLOWED_ORIGINS == expected


def test_allowed_origins_as_list():
    config = Settings(_env_file=None, ALLOWED_ORIGINS=["https://a.test"])

    assert config.ALLOWED_ORIGINS == ["https://a.test"]


def test_api_key_is_secret(monkeypatch):
    monkeypatch.setenv("MODEL_API_KEY", "sk-live-000000009999")

    config = load_settings()

    assert config.MODEL_API_KEY.get_secret_value() == "sk-live-000000009999"
    assert "9999" not in repr(config)


class TestOriginsToRegex:
    def test_wildcard_matches_any_extension(self):
        pattern = origins_to_regex(["chrome-extension://*"])

        assert re.fullmatch(pattern, "chrome-extension://abcdefghijklmnop")
        assert not re.fullmatch(pattern, "https://evil.test")

    def test_multiple_origins(self):
        pattern = origins_to_regex(["chrome-extension://*", "https://example.com"])

        assert re.fullmatch(pattern, "https://example.com")
        assert not re.fullmatch(pattern, "https://example.com.evil.test")

    def test_empty(self):
        assert origins_to_regex([]) is None
