"""Integration test fixtures.

Builds the real component graph behind the FastAPI app, with the completion
provider replaced by an httpx.MockTransport. No external services are needed.
"""

import json
from typing import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from classification_proxy.api.dependencies import get_orchestrator
from classification_proxy.auth.fingerprint import FingerprintAuth
from classification_proxy.cache.result_cache import ResultCache
from classification_proxy.classifier.circuit_breaker import CircuitBreaker
from classification_proxy.classifier.classifier import Classifier
from classification_proxy.llm.chat_completion_client import ChatCompletionClient
from classification_proxy.llm.prompt_builder import PromptBuilder
from classification_proxy.main import app
from classification_proxy.orchestrator.orchestrator import RequestOrchestrator
from classification_proxy.quota.limiter import QuotaLimiter


class FakeProvider:
    """
    Chat-completions endpoint double.

    Answers every classify call with one label per prompt line, using
    ``labels_for`` to choose each label from the line text. Set ``status``
    to make it fail.
    """

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.status = 200
        self.labels_for: Callable[[str], str] = lambda line: "BLOCK" if "spoiler" in line else "ALLOW"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(self.status, json={"data": []})

        self.calls.append(request)
        if self.status != 200:
            return httpx.Response(self.status, text="provider unavailable")

        messages = json.loads(request.content)["messages"]
        lines = messages[1]["content"].splitlines()
        content = "\n".join(self.labels_for(line) for line in lines)
        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-test",
                "model": "test-model",
                "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
                "usage": {"prompt_tokens": 10, "completion_tokens": len(lines), "total_tokens": 10 + len(lines)},
            },
        )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def orchestrator(provider, test_settings) -> RequestOrchestrator:
    client = ChatCompletionClient(
        endpoint=test_settings.MODEL_ENDPOINT,
        api_key=test_settings.MODEL_API_KEY,
        timeout=test_settings.MODEL_TIMEOUT,
        transport=httpx.MockTransport(provider),
    )
    return RequestOrchestrator(
        auth=FingerprintAuth(),
        limiter=QuotaLimiter(),
        cache=ResultCache(),
        classifier=Classifier(
            client=client,
            prompt_builder=PromptBuilder(model=test_settings.MODEL_NAME),
            circuit_breaker=CircuitBreaker(),
        ),
        request_timeout_seconds=test_settings.REQUEST_TIMEOUT_SECONDS,
    )


@pytest.fixture
def api_client(orchestrator):
    """TestClient over the real app with the orchestrator swapped in."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_header(api_client) -> dict[str, str]:
    response = api_client.post("/auth", headers={"user-agent": "integration-tests"})
    assert response.status_code == 201
    return {"Authorization": response.json()["token"]}
