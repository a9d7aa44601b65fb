"""
Unit tests for API dependency injection.
"""

import pytest

from classification_proxy.api.dependencies import (
    get_classifier,
    get_fingerprint_auth,
    get_llm_client,
    get_orchestrator,
    get_prompt_builder,
    get_quota_limiter,
    get_result_cache,
    get_settings,
    get_sweeper,
    reset_dependencies,
)
from classification_proxy.config import Settings
from classification_proxy.llm.base_client import BaseLLMClient
from classification_proxy.llm.prompt_builder import PromptBuilder
from classification_proxy.orchestrator.orchestrator import RequestOrchestrator


@pytest.fixture(autouse=True)
def fresh_dependencies():
    reset_dependencies()
    yield
    reset_dependencies()


def test_get_settings():
    """Test settings singleton."""
    settings1 = get_settings()
    settings2 = get_settings()

    # Should be same instance (cached)
    assert settings1 is settings2
    assert isinstance(settings1, Settings)


def test_get_llm_client():
    """Test LLM client singleton."""
    client1 = get_llm_client()
    client2 = get_llm_client()

    assert client1 is client2
    assert isinstance(client1, BaseLLMClient)


def test_get_prompt_builder():
    """Test prompt builder singleton."""
    builder1 = get_prompt_builder()

    assert builder1 is get_prompt_builder()
    assert isinstance(builder1, PromptBuilder)
    assert builder1.model == get_settings().MODEL_NAME


def test_orchestrator_composes_singletons():
    """Test that dependencies work together."""
    orchestrator = get_orchestrator()

    assert isinstance(orchestrator, RequestOrchestrator)
    assert orchestrator is get_orchestrator()
    assert orchestrator.auth is get_fingerprint_auth()
    assert orchestrator.limiter is get_quota_limiter()
    assert orchestrator.cache is get_result_cache()
    assert orchestrator.classifier is get_classifier()
    assert orchestrator.classifier.client is get_llm_client()


def test_settings_flow_into_components():
    config = get_settings()

    assert get_result_cache().max_size == config.CACHE_MAX_SIZE
    assert get_quota_limiter().burst_window_seconds == config.BURST_WINDOW_SECONDS
    assert get_fingerprint_auth().max_identities_per_fingerprint == config.FINGERPRINT_MAX_IDENTITIES
    assert get_classifier().max_batch_size == config.CLASSIFIER_MAX_BATCH_SIZE


def test_sweeper_covers_every_store():
    removed = get_sweeper().run_once()

    assert set(removed) == {"cache", "quota", "identities"}


def test_reset_dependencies_rebuilds():
    cache = get_result_cache()

    reset_dependencies()

    assert get_result_cache() is not cache
