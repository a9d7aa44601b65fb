"""
Unit tests for ChatCompletionClient.

The provider is simulated with httpx.MockTransport, so no network is used.
"""

import json

import httpx
import pytest
from pydantic import SecretStr

from classification_proxy.llm.chat_completion_client import ChatCompletionClient
from classification_proxy.llm.exceptions import (
    LLMConnectionError,
    LLMCredentialError,
    LLMGenerationError,
    LLMResponseFormatError,
    LLMTimeoutError,
)

ENDPOINT = "https://llm.test/v1/chat/completions"
API_KEY = SecretStr("sk-test-000000001234")


def completion_body(content="ALLOW\nBLOCK", usage=True) -> dict:
    body = {
        "id": "chatcmpl-123",
        "model": "test-model-0613",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }
    if usage:
        body["usage"] = {"prompt_tokens": 40, "completion_tokens": 4, "total_tokens": 44}
    return body


def make_client(handler, api_key=API_KEY, **kwargs) -> ChatCompletionClient:
    return ChatCompletionClient(
        endpoint=ENDPOINT,
        api_key=api_key,
        timeout=2.0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.fixture
def request_model(prompt_builder, make_items):
    return prompt_builder.build_request("no spoilers", make_items(2))


class TestGenerate:
    @pytest.mark.asyncio
    async def test_success(self, request_model):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=completion_body())

        client = make_client(handler)
        response = await client.generate(request_model)
        await client.close()

        assert response.content == "ALLOW\nBLOCK"
        assert response.model_version == "test-model-0613"
        assert response.finish_reason == "stop"
        assert response.prompt_tokens == 40
        assert response.completion_tokens == 4
        assert response.usage_tokens == 44
        assert response.raw_metadata == {"id": "chatcmpl-123"}

        sent = seen[0]
        assert str(sent.url) == ENDPOINT
        assert sent.headers["authorization"] == "Bearer sk-test-000000001234"
        payload = json.loads(sent.content)
        assert payload["model"] == "test-model"
        assert payload["temperature"] == 0.0
        assert payload["max_tokens"] == 50
        assert payload["seed"] == 42
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_unset_seed_is_omitted(self, request_model):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=completion_body())

        client = make_client(handler)

        await client.generate(request_model.model_copy(update={"seed": None}))

        assert "seed" not in json.loads(seen[0].content)

    @pytest.mark.asyncio
    async def test_success_without_usage(self, request_model):
        client = make_client(lambda r: httpx.Response(200, json=completion_body(usage=False)))

        response = await client.generate(request_model)

        assert response.usage_tokens is None

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_any_call(self, request_model):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=completion_body())

        client = make_client(handler, api_key=None)

        with pytest.raises(LLMCredentialError):
            await client.generate(request_model)
        assert calls == []

    @pytest.mark.asyncio
    async def test_empty_key_counts_as_missing(self, request_model):
        client = make_client(lambda r: httpx.Response(200), api_key=SecretStr(""))

        with pytest.raises(LLMCredentialError):
            await client.generate(request_model)

    @pytest.mark.asyncio
    async def test_timeout(self, request_model):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(LLMTimeoutError):
            await make_client(handler).generate(request_model)

    @pytest.mark.asyncio
    async def test_network_error(self, request_model):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(LLMConnectionError) as exc_info:
            await make_client(handler).generate(request_model)
        assert not isinstance(exc_info.value, LLMTimeoutError)

    @pytest.mark.asyncio
    async def test_error_status(self, request_model):
        client = make_client(lambda r: httpx.Response(500, text="upstream exploded"))

        with pytest.raises(LLMGenerationError) as exc_info:
            await client.generate(request_model)
        assert exc_info.value.status_code == 500
        assert exc_info.value.details["body"] == "upstream exploded"

    @pytest.mark.asyncio
    async def test_status_errors_are_not_retried(self, request_model):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429)

        with pytest.raises(LLMGenerationError):
            await make_client(handler, max_retries=3).generate(request_model)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_malformed_json(self, request_model):
        client = make_client(lambda r: httpx.Response(200, content=b"{not json"))

        with pytest.raises(LLMResponseFormatError):
            await client.generate(request_model)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"choices": []},
            {"object": "chat.completion"},
            {"choices": [{"message": {"role": "assistant", "content": ""}}]},
            {"choices": [{"message": {"role": "assistant"}}]},
            [1, 2, 3],
        ],
    )
    async def test_unusable_body(self, request_model, body):
        client = make_client(lambda r: httpx.Response(200, json=body))

        with pytest.raises(LLMResponseFormatError):
            await client.generate(request_model)

    @pytest.mark.asyncio
    async def test_connection_errors_are_retried(self, request_model):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=completion_body())

        response = await make_client(handler, max_retries=2).generate(request_model)

        assert response.content == "ALLOW\nBLOCK"
        assert len(calls) == 2


class TestHealthCheck:
    def test_models_url(self):
        client = make_client(lambda r: httpx.Response(200))

        assert client.models_url == "https://llm.test/v1/models"

    @pytest.mark.asyncio
    async def test_healthy(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": []})

        assert await make_client(handler).health_check() is True
        assert seen[0].method == "GET"
        assert str(seen[0].url) == "https://llm.test/v1/models"

    @pytest.mark.asyncio
    async def test_unhealthy_status(self):
        assert await make_client(lambda r: httpx.Response(401)).health_check() is False

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert await make_client(handler).health_check() is False

    @pytest.mark.asyncio
    async def test_no_key(self):
        assert await make_client(lambda r: httpx.Response(200), api_key=None).health_check() is False


def test_repr_does_not_leak_key():
    client = make_client(lambda r: httpx.Response(200))

    assert "sk-test" not in repr(client)
