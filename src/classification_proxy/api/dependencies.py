"""
FastAPI dependency injection for the classification proxy.

Every component is a process-wide singleton built once from settings.
Tests replace them through ``app.dependency_overrides`` or reset them with
``reset_dependencies``.
"""

from functools import lru_cache
from pathlib import Path

from classification_proxy.auth.fingerprint import FingerprintAuth
from classification_proxy.cache.result_cache import ResultCache
from classification_proxy.classifier.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from classification_proxy.classifier.classifier import Classifier
from classification_proxy.config import Settings, settings
from classification_proxy.llm.base_client import BaseLLMClient
from classification_proxy.llm.chat_completion_client import ChatCompletionClient
from classification_proxy.llm.prompt_builder import PromptBuilder
from classification_proxy.maintenance.scheduler import PeriodicSweeper, SweepJob
from classification_proxy.models.enums import Tier
from classification_proxy.orchestrator.orchestrator import RequestOrchestrator
from classification_proxy.quota.limiter import QuotaLimiter


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return settings


@lru_cache()
def get_llm_client() -> BaseLLMClient:
    """
    Get singleton LLM client with connection pooling.

    The client maintains an internal connection pool for efficiency.
    """
    config = get_settings()
    return ChatCompletionClient(
        endpoint=config.MODEL_ENDPOINT,
        api_key=config.MODEL_API_KEY,
        timeout=config.MODEL_TIMEOUT,
        max_retries=config.MODEL_MAX_RETRIES,
    )


@lru_cache()
def get_prompt_builder() -> PromptBuilder:
    """
    Get singleton prompt builder.

    Loads Jinja2 templates once and reuses them across requests.
    """
    config = get_settings()
    return PromptBuilder(
        templates_dir=Path(config.PROMPT_TEMPLATES_DIR) if config.PROMPT_TEMPLATES_DIR else None,
        model=config.MODEL_NAME,
        temperature=config.LLM_TEMPERATURE,
        seed=config.LLM_SEED,
        content_limit=config.CONTENT_PROMPT_LIMIT,
        preference_limit=config.PREFERENCE_PROMPT_LIMIT,
        tokens_per_item=config.TOKENS_PER_ITEM,
        min_output_tokens=config.MIN_OUTPUT_TOKENS,
    )


@lru_cache()
def get_classifier() -> Classifier:
    config = get_settings()
    breaker = CircuitBreaker(
        CircuitBreakerConfig(
            failure_threshold=config.CIRCUIT_BREAKER_MAX_FAILURES,
            reset_timeout=config.CIRCUIT_BREAKER_RESET_SECONDS,
        )
    )
    return Classifier(
        client=get_llm_client(),
        prompt_builder=get_prompt_builder(),
        circuit_breaker=breaker,
        max_batch_size=config.CLASSIFIER_MAX_BATCH_SIZE,
    )


@lru_cache()
def get_result_cache() -> ResultCache:
    config = get_settings()
    return ResultCache(
        max_size=config.CACHE_MAX_SIZE,
        ttl_seconds=config.CACHE_TTL_SECONDS,
        inflight_timeout_seconds=config.INFLIGHT_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_quota_limiter() -> QuotaLimiter:
    config = get_settings()
    return QuotaLimiter(
        default_tier=Tier(config.DEFAULT_TIER),
        burst_window_seconds=config.BURST_WINDOW_SECONDS,
        reset_hour_utc=config.QUOTA_RESET_HOUR_UTC,
    )


@lru_cache()
def get_fingerprint_auth() -> FingerprintAuth:
    config = get_settings()
    return FingerprintAuth(
        max_identities_per_fingerprint=config.FINGERPRINT_MAX_IDENTITIES,
        active_window_seconds=config.FINGERPRINT_ACTIVE_WINDOW_SECONDS,
        retention_seconds=config.IDENTITY_RETENTION_SECONDS,
        token_bytes=config.TOKEN_BYTES,
        default_tier=Tier(config.DEFAULT_TIER),
    )


@lru_cache()
def get_orchestrator() -> RequestOrchestrator:
    """
    Get the singleton request orchestrator.

    Composes auth, limiter, cache and classifier singletons.
    """
    config = get_settings()
    return RequestOrchestrator(
        auth=get_fingerprint_auth(),
        limiter=get_quota_limiter(),
        cache=get_result_cache(),
        classifier=get_classifier(),
        default_preference=config.DEFAULT_PREFERENCE,
        request_timeout_seconds=config.REQUEST_TIMEOUT_SECONDS,
        max_batch_size=config.MAX_BATCH_SIZE,
        max_content_length=config.MAX_CONTENT_LENGTH,
        max_preference_length=config.MAX_PREFERENCE_LENGTH,
    )


@lru_cache()
def get_sweeper() -> PeriodicSweeper:
    """Maintenance sweeps over the component singletons."""
    config = get_settings()
    limiter = get_quota_limiter()
    auth = get_fingerprint_auth()
    return PeriodicSweeper(
        [
            SweepJob("cache", config.CACHE_SWEEP_INTERVAL_SECONDS, get_result_cache().sweep),
            SweepJob(
                "quota",
                config.QUOTA_SWEEP_INTERVAL_SECONDS,
                lambda: limiter.sweep(config.QUOTA_IDLE_RETENTION_SECONDS),
            ),
            SweepJob("identities", config.IDENTITY_SWEEP_INTERVAL_SECONDS, auth.sweep),
        ]
    )


def reset_dependencies() -> None:
    """Drop every cached singleton so the next lookup rebuilds it."""
    for provider in (
        get_settings,
        get_llm_client,
        get_prompt_builder,
        get_classifier,
        get_result_cache,
        get_quota_limiter,
        get_fingerprint_auth,
        get_orchestrator,
        get_sweeper,
    ):
        provider.cache_clear()
