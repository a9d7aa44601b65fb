"""
OpenAI-compatible chat-completions client.

Communicates with the provider using httpx AsyncClient. Supports:
- Bearer credential from configuration (masked in every log line)
- Connection pooling via a persistent client
- Optional connection-level retry with exponential backoff
- Health check against the provider's models listing
"""

import asyncio
import time
from typing import Any, Optional

import httpx
import structlog
from pydantic import SecretStr

from classification_proxy.llm.base_client import BaseLLMClient
from classification_proxy.llm.exceptions import (
    LLMConnectionError,
    LLMCredentialError,
    LLMGenerationError,
    LLMResponseFormatError,
    LLMTimeoutError,
)
from classification_proxy.logging_config import mask_secret
from classification_proxy.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from classification_proxy.monitoring.metrics import llm_latency_seconds, llm_tokens_total


logger = structlog.get_logger(__name__)


class ChatCompletionClient(BaseLLMClient):
    """
    Chat-completions client using httpx for async HTTP communication.

    API Endpoints:
    - POST {endpoint}: chat completion
    - GET {endpoint without /chat/completions}/models: health check
    """

    def __init__(
        self,
        endpoint: str = "https://api.openai.com/v1/chat/completions",
        api_key: Optional[SecretStr] = None,
        timeout: float = 30.0,
        max_retries: int = 1,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            endpoint: Full chat-completions URL
            api_key: Bearer credential; requests fail fast without one
            timeout: Request timeout in seconds
            max_retries: Total attempts for connection-level failures
            connection_limits: httpx connection pool limits
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        super().__init__(endpoint, timeout, max_retries)

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0
            )

        self._api_key = api_key
        self._client: Optional[httpx.AsyncClient] = None
        self._connection_limits = connection_limits
        self._transport = transport

        logger.info(
            "Chat completion client initialized",
            endpoint=self.endpoint,
            api_key=mask_secret(self._secret()),
        )

    def _secret(self) -> Optional[str]:
        if self._api_key is None:
            return None
        return self._api_key.get_secret_value() or None

    @property
    def models_url(self) -> str:
        base = self.endpoint
        if base.endswith("/chat/completions"):
            base = base[: -len("/chat/completions")]
        return f"{base}/models"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client

    def _headers(self, secret: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {secret}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _extract_content(data: Any) -> str:
        if not isinstance(data, dict):
            raise LLMResponseFormatError("Response body is not a JSON object")
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise LLMResponseFormatError("Response has no choices")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise LLMResponseFormatError("Empty completion content")
        return content

    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        """
        POST a chat completion.

        Payload:
        {
            "model": "gpt-4-turbo",
            "messages": [{"role": "system", ...}, {"role": "user", ...}],
            "temperature": 0,
            "max_tokens": 50
        }
        """
        secret = self._secret()
        if secret is None:
            logger.error("Completion provider API key not configured")
            raise LLMCredentialError("MODEL_API_KEY is not configured")

        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [m.model_dump() for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        if request.seed is not None:
            payload["seed"] = request.seed

        logger.debug(
            "Sending chat completion request",
            model=request.model,
            max_tokens=request.max_tokens,
            api_key=mask_secret(secret),
        )

        start_time = time.time()
        last_error: Optional[LLMConnectionError] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                client = await self._get_client()
                response = await client.post(self.endpoint, json=payload, headers=self._headers(secret))
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                logger.warning("Provider request timeout", attempt=attempt, timeout=self.timeout, error=str(e))
                last_error = LLMTimeoutError(
                    f"Request timeout after {self.timeout}s",
                    details={"attempt": attempt, "timeout": self.timeout}
                )
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                logger.error("Provider HTTP error", status_code=status_code, attempt=attempt)
                llm_latency_seconds.labels(model=request.model, success="false").observe(
                    time.time() - start_time
                )
                raise LLMGenerationError(
                    f"Provider returned status {status_code}",
                    status_code=status_code,
                    details={"body": e.response.text[:500]},
                ) from e
            except httpx.TransportError as e:
                logger.warning("Provider network error", attempt=attempt, error=str(e))
                last_error = LLMConnectionError(
                    f"Network error: {e}",
                    details={"attempt": attempt, "error_type": type(e).__name__}
                )
            except ValueError as e:
                logger.error("Failed to parse provider response JSON", error=str(e))
                raise LLMResponseFormatError(
                    "Invalid JSON response from provider",
                    details={"parse_error": str(e)}
                ) from e
            else:
                return self._build_response(request, data, start_time, attempt)

            if attempt < self.max_retries:
                backoff = 2 ** (attempt - 1)
                logger.info("Retrying provider call", backoff_seconds=backoff)
                await asyncio.sleep(backoff)

        llm_latency_seconds.labels(model=request.model, success="false").observe(time.time() - start_time)
        if last_error:
            raise last_error
        raise LLMConnectionError("Provider call failed after all retries")

    def _build_response(
        self,
        request: LLMGenerationRequest,
        data: Any,
        start_time: float,
        attempt: int,
    ) -> LLMGenerationResponse:
        content = self._extract_content(data)
        latency_ms = int((time.time() - start_time) * 1000)

        model_version = data.get("model") or request.model
        finish_reason = data["choices"][0].get("finish_reason") or "unknown"
        usage = data.get("usage") or {}
        prompt_tokens = usage.get("prompt_tokens")
        completion_tokens = usage.get("completion_tokens")

        logger.info(
            "Chat completion successful",
            model=model_version,
            latency_ms=latency_ms,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            finish_reason=finish_reason,
            attempt=attempt
        )

        llm_latency_seconds.labels(model=model_version, success="true").observe(latency_ms / 1000.0)
        if prompt_tokens:
            llm_tokens_total.labels(model=model_version, token_type="prompt").inc(prompt_tokens)
        if completion_tokens:
            llm_tokens_total.labels(model=model_version, token_type="completion").inc(completion_tokens)

        return LLMGenerationResponse(
            content=content,
            model_version=model_version,
            finish_reason=finish_reason,
            usage_tokens=usage.get("total_tokens"),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms,
            raw_metadata={"id": data.get("id")},
        )

    async def health_check(self) -> bool:
        """
        Check provider reachability via GET /models.

        Returns True only on HTTP 200.
        """
        secret = self._secret()
        if secret is None:
            logger.warning("Provider health check skipped, API key not configured")
            return False
        try:
            client = await self._get_client()
            response = await client.get(self.models_url, headers=self._headers(secret), timeout=5.0)
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("Provider health check failed", error=str(e))
            return False

    async def close(self):
        """Close HTTP client and cleanup connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.info("Chat completion client closed")
