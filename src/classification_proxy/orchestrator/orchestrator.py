"""
Classify request handling.

Composes identity validation, quota, the result cache and the classifier:

    authenticate -> validate payload -> check quota (downgrade if needed)
    -> per item: cache hit | join inflight call | register new call
    -> one background classifier call for all newly registered misses
    -> wait within the request budget -> increment quota once -> respond

Everything from the first inflight registration up to scheduling the
background call runs without suspending, so concurrent requests always see
each other's registrations.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

import structlog
from pydantic import ValidationError

from classification_proxy.auth.fingerprint import FingerprintAuth
from classification_proxy.cache.result_cache import ResultCache, make_cache_key
from classification_proxy.classifier.classifier import Classifier
from classification_proxy.exceptions import (
    BurstLimitExceededError,
    InvalidAuthError,
    InvalidRequestError,
    ProxyError,
    QuotaExceededError,
)
from classification_proxy.models.classification_models import (
    ClassificationItem,
    ClassificationResult,
    ClassifyRequest,
    ClassifyResponse,
    ClassifyStats,
)
from classification_proxy.models.enums import ErrorCode, ProviderErrorCode, ResultSource, Tier
from classification_proxy.models.identity_models import IssuedIdentity
from classification_proxy.models.quota_models import QuotaDecision, QuotaReport
from classification_proxy.monitoring.metrics import (
    classify_duration_seconds,
    classify_requests_total,
    inflight_dedup_total,
    quota_downgrades_total,
    quota_rejections_total,
)
from classification_proxy.quota.limiter import QuotaLimiter

logger = structlog.get_logger(__name__)


class RequestOrchestrator:
    """
    Entry point for classify, quota and identity operations.

    Owns the background classification tasks it spawns; ``close`` cancels
    any still running.
    """

    def __init__(
        self,
        auth: FingerprintAuth,
        limiter: QuotaLimiter,
        cache: ResultCache,
        classifier: Classifier,
        default_preference: str = "Filter harmful, explicit, and abusive content",
        request_timeout_seconds: float = 8.0,
        max_batch_size: int = 50,
        max_content_length: int = 10000,
        max_preference_length: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.auth = auth
        self.limiter = limiter
        self.cache = cache
        self.classifier = classifier
        self.default_preference = default_preference
        self.request_timeout_seconds = request_timeout_seconds
        self.max_batch_size = max_batch_size
        self.max_content_length = max_content_length
        self.max_preference_length = max_preference_length
        self._clock = clock
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def issue_identity(self, headers: Mapping[str, str]) -> IssuedIdentity:
        """Issue an anonymous identity for the device behind ``headers``."""
        return self.auth.issue(self.auth.fingerprint(headers))

    def authenticate(self, authorization: Optional[str]) -> str:
        identity_id = self.auth.validate(authorization)
        if identity_id is None:
            raise InvalidAuthError("Missing or invalid authorization token")
        return identity_id

    def _identity_tier(self, identity_id: str) -> Tier:
        identity = self.auth.get_identity(identity_id)
        return identity.tier if identity is not None else self.limiter.default_tier

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def parse_request(self, payload: Any) -> ClassifyRequest:
        """Validate a raw payload. Raises InvalidRequestError; never mutates state."""
        try:
            request = ClassifyRequest.model_validate(payload)
        except ValidationError as e:
            errors = [
                {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]
            first = errors[0] if errors else {"loc": "", "msg": "Invalid request"}
            message = f"{first['loc']}: {first['msg']}" if first["loc"] else first["msg"]
            raise InvalidRequestError(message, details={"errors": errors}) from e

        if len(request.items) > self.max_batch_size:
            raise InvalidRequestError(f"items: at most {self.max_batch_size} items per request")
        if request.preference is not None and len(request.preference) > self.max_preference_length:
            raise InvalidRequestError(
                f"preference: at most {self.max_preference_length} characters"
            )
        for index, item in enumerate(request.items):
            if len(item.content) > self.max_content_length:
                raise InvalidRequestError(
                    f"Invalid item at index {index}: content exceeds {self.max_content_length} chars"
                )
        return request

    # ------------------------------------------------------------------
    # Classify
    # ------------------------------------------------------------------

    async def classify(self, authorization: Optional[str], payload: Any) -> ClassifyResponse:
        """
        Handle one classify request.

        Raises:
            InvalidAuthError: Bad or missing token
            InvalidRequestError: Payload failed validation
            QuotaExceededError / BurstLimitExceededError: Nothing can be served
        """
        started = self._clock()
        try:
            response = await self._classify(authorization, payload, started)
        except ProxyError as e:
            classify_requests_total.labels(status=e.code.value.lower()).inc()
            raise
        classify_requests_total.labels(status="downgraded" if response.downgraded else "ok").inc()
        classify_duration_seconds.observe(self._clock() - started)
        return response

    async def _classify(
        self, authorization: Optional[str], payload: Any, started: float
    ) -> ClassifyResponse:
        identity_id = self.authenticate(authorization)
        request = self.parse_request(payload)
        tier = request.tier or self._identity_tier(identity_id)
        preference = request.preference or self.default_preference

        items = self._apply_quota(identity_id, tier, request.items)

        log = logger.bind(identity_id=identity_id, tier=tier.value)
        resolved, pending = self._resolve_items(preference, items)

        if pending:
            remaining = self.request_timeout_seconds - (self._clock() - started)
            await asyncio.wait(set(pending.values()), timeout=max(0.0, remaining))

        results: list[ClassificationResult] = []
        for index, item in enumerate(items):
            result = resolved.get(index)
            if result is None:
                result = self._settled_result(item, pending[index])
            results.append(result)

        usage = self.limiter.increment_usage(identity_id, tier, len(items))

        cached = sum(1 for r in results if r.cached)
        failed_open = sum(1 for r in results if r.failed_open)
        duration_ms = int((self._clock() - started) * 1000)
        log.info(
            "Classify request served",
            requested=len(request.items),
            served=len(items),
            cached=cached,
            failed_open=failed_open,
            duration_ms=duration_ms,
        )

        return ClassifyResponse(
            results=results,
            quota=usage,
            stats=ClassifyStats(
                total=len(results),
                cached=cached,
                classified=len(results) - cached,
                failed_open=failed_open,
                duration_ms=duration_ms,
            ),
            requested=len(request.items),
            timestamp=datetime.now(timezone.utc),
        )

    def _apply_quota(
        self, identity_id: str, tier: Tier, items: list[ClassificationItem]
    ) -> list[ClassificationItem]:
        decision = self.limiter.check_limit(identity_id, tier, len(items))
        if decision.allowed:
            return items

        allowed = self.limiter.downgrade_request(identity_id, len(items), tier)
        if allowed is None:
            quota_rejections_total.labels(reason=decision.reason.value, tier=tier.value).inc()
            raise self._quota_error(decision)

        quota_downgrades_total.labels(tier=tier.value).inc()
        logger.info(
            "Batch downgraded to fit quota",
            identity_id=identity_id,
            reason=decision.reason.value,
            requested=len(items),
            allowed=allowed,
        )
        return items[:allowed]

    @staticmethod
    def _quota_error(decision: QuotaDecision) -> ProxyError:
        details: dict[str, Any] = {"retryAfterMs": decision.retry_after_ms}
        if decision.reason == ErrorCode.QUOTA_EXCEEDED:
            if decision.reset_at is not None:
                details["resetAt"] = decision.reset_at.isoformat()
            return QuotaExceededError("Daily quota exceeded", details=details)
        return BurstLimitExceededError("Too many requests, slow down", details=details)

    def _resolve_items(
        self, preference: str, items: list[ClassificationItem]
    ) -> tuple[dict[int, ClassificationResult], dict[int, "asyncio.Future[ClassificationResult]"]]:
        """
        Split items into cache hits and pending futures.

        Must not suspend between registering an inflight call and scheduling
        the background call that settles it.
        """
        loop = asyncio.get_running_loop()
        resolved: dict[int, ClassificationResult] = {}
        pending: dict[int, asyncio.Future] = {}
        owned: dict[str, tuple[asyncio.Future, ClassificationItem]] = {}

        for index, item in enumerate(items):
            key = make_cache_key(item.hash, preference)

            label = self.cache.get(key)
            if label is not None:
                resolved[index] = ClassificationResult(
                    hash=item.hash, label=label, source=ResultSource.CACHE
                )
                continue

            future = self.cache.get_inflight(key)
            if future is None:
                future = loop.create_future()
                self.cache.register_inflight(key, future)
                owned[key] = (future, item)
            elif key not in owned:
                inflight_dedup_total.inc()
            pending[index] = future

        if owned:
            task = asyncio.create_task(self._classify_and_settle(preference, owned))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return resolved, pending

    async def _classify_and_settle(
        self,
        preference: str,
        owned: dict[str, tuple[asyncio.Future, ClassificationItem]],
    ) -> None:
        """Run one classifier call, write through the cache, settle every future."""
        keys = list(owned)
        try:
            results = await self.classifier.classify_batch(
                preference, [owned[key][1] for key in keys]
            )
            for key, result in zip(keys, results):
                if result.source == ResultSource.FRESH:
                    self.cache.set(key, result.label)
                future = owned[key][0]
                if not future.done():
                    future.set_result(result)
        except Exception as e:
            logger.exception("Background classification failed", error=str(e), items=len(keys))
        finally:
            # Anything the classifier did not answer (cap, cancellation) fails open.
            for key, (future, item) in owned.items():
                if not future.done():
                    future.set_result(
                        ClassificationResult.fail_open(item.hash, ProviderErrorCode.PROVIDER_ERROR)
                    )

    @staticmethod
    def _settled_result(item: ClassificationItem, future: asyncio.Future) -> ClassificationResult:
        if not future.done() or future.cancelled() or future.exception() is not None:
            return ClassificationResult.fail_open(item.hash, ProviderErrorCode.REQUEST_TIMEOUT)
        result: ClassificationResult = future.result()
        if result.hash != item.hash:
            result = result.model_copy(update={"hash": item.hash})
        return result

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def quota(self, authorization: Optional[str], tier: Optional[Tier] = None) -> QuotaReport:
        """Quota snapshot for the caller, under ``tier`` or the identity's own tier."""
        identity_id = self.authenticate(authorization)
        effective = tier or self._identity_tier(identity_id)
        return QuotaReport(
            quota=self.limiter.get_quota(identity_id, effective),
            limits=self.limiter.get_tier_details(effective),
        )

    def stats(self) -> dict[str, Any]:
        return {
            "cache": self.cache.stats(),
            "quota": self.limiter.stats(),
            "auth": self.auth.stats(),
            "classifier": self.classifier.stats(),
            "background_tasks": len(self._tasks),
        }

    async def health(self) -> dict[str, Any]:
        provider_ok = await self.classifier.health_check()
        return {
            "status": "healthy" if provider_ok else "degraded",
            "provider_reachable": provider_ok,
            "circuit_breaker": self.classifier.circuit_breaker.state.value,
        }

    async def close(self) -> None:
        """Cancel outstanding background classifications."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Orchestrator closed", cancelled_tasks=len(tasks))
