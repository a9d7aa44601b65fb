"""Unit test fixtures (mocks and stubs).

Provides fake provider clients and component factories for testing without
external dependencies.
"""

import asyncio
from typing import Optional, Union

import pytest

from classification_proxy.auth.fingerprint import FingerprintAuth
from classification_proxy.cache.result_cache import ResultCache
from classification_proxy.classifier.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from classification_proxy.classifier.classifier import Classifier
from classification_proxy.llm.base_client import BaseLLMClient
from classification_proxy.llm.prompt_builder import PromptBuilder
from classification_proxy.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from classification_proxy.orchestrator.orchestrator import RequestOrchestrator
from classification_proxy.quota.limiter import QuotaLimiter


def llm_response(content: str) -> LLMGenerationResponse:
    return LLMGenerationResponse(
        content=content,
        model_version="test-model",
        finish_reason="stop",
        latency_ms=12,
    )


class ScriptedLLMClient(BaseLLMClient):
    """
    Provider stand-in that replays scripted outcomes.

    Each entry is either response text or an exception to raise. The last
    entry repeats once the script runs out. If ``gate`` is set, every call
    waits on it before answering.
    """

    def __init__(self, *script: Union[str, Exception], gate: Optional[asyncio.Event] = None):
        super().__init__("https://llm.test/v1/chat/completions")
        self.script = list(script) or ["ALLOW"]
        self.gate = gate
        self.requests: list[LLMGenerationRequest] = []
        self.healthy = True

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        self.requests.append(request)
        outcome = self.script[min(len(self.requests), len(self.script)) - 1]
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(outcome, Exception):
            raise outcome
        return llm_response(outcome)

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def prompt_builder() -> PromptBuilder:
    return PromptBuilder(model="test-model")


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    return CircuitBreaker(CircuitBreakerConfig(failure_threshold=3, reset_timeout=60.0), clock=clock)


@pytest.fixture
def make_classifier(prompt_builder, breaker):
    def _make(client: BaseLLMClient) -> Classifier:
        return Classifier(client=client, prompt_builder=prompt_builder, circuit_breaker=breaker)

    return _make


@pytest.fixture
def make_orchestrator(clock, make_classifier):
    """
    Build an orchestrator over fresh components sharing the fake clock.

    Keep a reference to the client passed in to inspect provider calls.
    """

    def _make(client: Optional[BaseLLMClient] = None, **kwargs) -> RequestOrchestrator:
        client = client or ScriptedLLMClient("ALLOW")
        return RequestOrchestrator(
            auth=FingerprintAuth(clock=clock),
            limiter=QuotaLimiter(clock=clock),
            cache=ResultCache(clock=clock),
            classifier=make_classifier(client),
            **kwargs,
        )

    return _make


@pytest.fixture
def scripted_llm():
    """The ScriptedLLMClient class, for building provider fakes in tests."""
    return ScriptedLLMClient
