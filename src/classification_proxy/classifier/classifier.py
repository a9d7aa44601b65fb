"""
Batch classifier with fail-open semantics.

One provider call per batch. Every failure path (open circuit, missing
credential, timeout, network error, bad status, malformed body, anything
unexpected) yields ALLOW for the whole batch, tagged FAILED_OPEN with a
reason code. The classifier never raises for provider problems.
"""

from typing import Any, Optional, Sequence

import structlog

from classification_proxy.classifier.circuit_breaker import CircuitBreaker
from classification_proxy.classifier.parser import parse_labels
from classification_proxy.llm.base_client import BaseLLMClient
from classification_proxy.llm.exceptions import (
    LLMClientError,
    LLMConnectionError,
    LLMCredentialError,
    LLMGenerationError,
    LLMResponseFormatError,
    LLMTimeoutError,
)
from classification_proxy.llm.prompt_builder import PromptBuilder
from classification_proxy.models.classification_models import (
    ClassificationItem,
    ClassificationResult,
)
from classification_proxy.models.enums import Label, ProviderErrorCode, ResultSource
from classification_proxy.monitoring.metrics import (
    classifier_batches_total,
    classifier_failed_open_total,
    classifier_labels_total,
    classifier_line_mismatch_total,
)

logger = structlog.get_logger(__name__)

# Most specific first: LLMTimeoutError subclasses LLMConnectionError.
_ERROR_CODES: tuple[tuple[type[LLMClientError], ProviderErrorCode], ...] = (
    (LLMCredentialError, ProviderErrorCode.PROVIDER_CREDENTIAL_MISSING),
    (LLMTimeoutError, ProviderErrorCode.PROVIDER_TIMEOUT),
    (LLMConnectionError, ProviderErrorCode.PROVIDER_NETWORK_ERROR),
    (LLMGenerationError, ProviderErrorCode.PROVIDER_STATUS_ERROR),
    (LLMResponseFormatError, ProviderErrorCode.PROVIDER_MALFORMED_RESPONSE),
)


def error_code_for(error: Exception) -> ProviderErrorCode:
    for error_type, code in _ERROR_CODES:
        if isinstance(error, error_type):
            return code
    return ProviderErrorCode.PROVIDER_ERROR


class Classifier:
    """
    ALLOW/BLOCK classifier over a chat-completion provider.

    Args:
        client: Provider client
        prompt_builder: Builds the batch prompt
        circuit_breaker: Shared breaker; one per provider
        max_batch_size: Hard cap; larger batches are silently truncated
    """

    def __init__(
        self,
        client: BaseLLMClient,
        prompt_builder: PromptBuilder,
        circuit_breaker: Optional[CircuitBreaker] = None,
        max_batch_size: int = 50,
    ):
        self.client = client
        self.prompt_builder = prompt_builder
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.max_batch_size = max_batch_size

    async def classify_batch(
        self, preference: str, items: Sequence[ClassificationItem]
    ) -> list[ClassificationResult]:
        """
        Classify a batch in one provider call.

        Returns one result per (possibly truncated) input item, in input
        order.
        """
        if not items:
            return []
        if len(items) > self.max_batch_size:
            logger.warning(
                "Batch exceeds classifier cap, truncating",
                requested=len(items),
                max_batch_size=self.max_batch_size,
            )
            items = items[: self.max_batch_size]

        # Position i of the provider output belongs to hashes[i].
        hashes = [item.hash for item in items]

        if not self.circuit_breaker.allow_request():
            logger.warning("Circuit breaker open, failing open", items=len(hashes))
            classifier_batches_total.labels(outcome="short_circuit").inc()
            return self._fail_open(hashes, ProviderErrorCode.CIRCUIT_OPEN)

        try:
            request = self.prompt_builder.build_request(preference, items)
            response = await self.client.generate(request)
        except LLMClientError as e:
            code = error_code_for(e)
            logger.error(
                "Classification call failed, failing open",
                error_code=code.value,
                error=e.message,
                items=len(hashes),
            )
            return self._record_failure(hashes, code)
        except Exception as e:
            logger.exception(
                "Unexpected classification error, failing open",
                error=str(e),
                error_type=type(e).__name__,
                items=len(hashes),
            )
            return self._record_failure(hashes, ProviderErrorCode.PROVIDER_ERROR)

        parsed = parse_labels(response.content, len(hashes))
        if parsed.shortfall:
            classifier_line_mismatch_total.labels(kind="shortfall").inc()
            logger.warning(
                "Provider returned fewer labels than items, backfilling ALLOW",
                expected=len(hashes),
                missing=parsed.shortfall,
            )
        if parsed.surplus:
            classifier_line_mismatch_total.labels(kind="surplus").inc()
            logger.warning(
                "Provider returned extra label lines, ignoring",
                expected=len(hashes),
                extra=parsed.surplus,
            )

        self.circuit_breaker.record_success()
        classifier_batches_total.labels(outcome="success").inc()

        results = []
        for content_hash, label in zip(hashes, parsed.labels):
            classifier_labels_total.labels(label=label.value).inc()
            results.append(
                ClassificationResult(hash=content_hash, label=label, source=ResultSource.FRESH)
            )

        logger.info(
            "Batch classified",
            items=len(results),
            blocked=sum(1 for r in results if r.label == Label.BLOCK),
            latency_ms=response.latency_ms,
        )
        return results

    async def classify_one(self, preference: str, item: ClassificationItem) -> ClassificationResult:
        results = await self.classify_batch(preference, [item])
        return results[0]

    async def health_check(self) -> bool:
        """Whether the provider is reachable. Does not touch the breaker."""
        return await self.client.health_check()

    def reset_circuit_breaker(self) -> None:
        self.circuit_breaker.reset()
        logger.info("Circuit breaker reset")

    def stats(self) -> dict[str, Any]:
        return {"circuit_breaker": self.circuit_breaker.stats(), "max_batch_size": self.max_batch_size}

    def _record_failure(
        self, hashes: list[str], code: ProviderErrorCode
    ) -> list[ClassificationResult]:
        self.circuit_breaker.record_failure()
        classifier_batches_total.labels(outcome="failed_open").inc()
        return self._fail_open(hashes, code)

    @staticmethod
    def _fail_open(hashes: list[str], code: ProviderErrorCode) -> list[ClassificationResult]:
        classifier_failed_open_total.labels(error_code=code.value).inc(len(hashes))
        return [ClassificationResult.fail_open(h, code) for h in hashes]
