"""
Preference-aware result cache with inflight deduplication.

Design:
- Key: FNV-1a(content hash + preference), so the same content classified
  under two preferences is cached twice
- TTL-based expiry (1 hour default), re-validated on every read
- LRU eviction at capacity, O(1) via OrderedDict
- Lazy recency: reads only refresh recency once an entry is past half its
  TTL, trading strict LRU order for cheaper reads
- Inflight tracking so concurrent requests for one key share one call

State is process-local. Multiple instances keep independent caches.
"""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import structlog

from classification_proxy.models.enums import Label
from classification_proxy.monitoring.metrics import cache_evictions_total, cache_lookups_total

logger = structlog.get_logger(__name__)

FNV64_OFFSET_BASIS = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
FNV64_MASK = 0xFFFFFFFFFFFFFFFF

KEY_PREFIX = "cv_"


def fnv1a_64(data: bytes) -> int:
    """64-bit FNV-1a over raw bytes."""
    value = FNV64_OFFSET_BASIS
    for byte in data:
        value ^= byte
        value = (value * FNV64_PRIME) & FNV64_MASK
    return value


def make_cache_key(content_hash: str, preference: str = "") -> str:
    """
    Build the deterministic cache key for a content hash under a preference.

    Identical inputs always produce identical keys. Collisions are possible
    but rare; the cache is best-effort.

    >>> make_cache_key("abc123", "no spoilers") == make_cache_key("abc123", "no spoilers")
    True
    """
    digest = fnv1a_64(f"{content_hash}:{preference}".encode("utf-8"))
    return f"{KEY_PREFIX}{digest:016x}"


@dataclass
class CacheEntry:
    """Stored label. Replaced wholesale on every set."""

    key: str
    label: Label
    inserted_at: float


@dataclass
class InflightCall:
    """One classification in progress for a key."""

    key: str
    future: "asyncio.Future[Any]"
    started_at: float
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)


class ResultCache:
    """
    In-memory label cache plus inflight registry.

    All operations are synchronous and O(1) except ``sweep``. Unexpected
    failures inside get/set are logged and reported as absence, so callers
    can always fall through to classification.
    """

    def __init__(
        self,
        max_size: int = 10000,
        ttl_seconds: float = 3600.0,
        inflight_timeout_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            max_size: Maximum number of entries before LRU eviction
            ttl_seconds: Entry lifetime
            inflight_timeout_seconds: Hard bound on how long an inflight
                entry is kept, whether or not its call settles
            clock: Monotonic time source (injectable for tests)
        """
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self.inflight_timeout_seconds = inflight_timeout_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._inflight: dict[str, InflightCall] = {}

        logger.info(
            "ResultCache initialized",
            max_size=max_size,
            ttl_seconds=ttl_seconds,
            inflight_timeout_seconds=inflight_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Label]:
        """Return the cached label, or None if absent or older than TTL."""
        try:
            entry = self._entries.get(key)
            if entry is None:
                cache_lookups_total.labels(outcome="miss").inc()
                return None

            age = self._clock() - entry.inserted_at
            if age >= self.ttl_seconds:
                del self._entries[key]
                cache_lookups_total.labels(outcome="expired").inc()
                return None

            if age > self.ttl_seconds / 2:
                self._entries.move_to_end(key)

            cache_lookups_total.labels(outcome="hit").inc()
            return entry.label
        except Exception as e:
            logger.warning("Cache read failed, treating as miss", key=key, error=str(e))
            return None

    def set(self, key: str, label: Label) -> None:
        """Store a label, evicting the least-recently-used entry if full."""
        try:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                evicted_key, _ = self._entries.popitem(last=False)
                cache_evictions_total.labels(reason="lru").inc()
                logger.debug("Evicted LRU cache entry", key=evicted_key)

            self._entries[key] = CacheEntry(key=key, label=Label(label), inserted_at=self._clock())
        except Exception as e:
            logger.warning("Cache write failed, dropping entry", key=key, error=str(e))

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Inflight
    # ------------------------------------------------------------------

    def register_inflight(self, key: str, future: "asyncio.Future[Any]") -> bool:
        """
        Register the pending call for ``key``.

        Must be called before the registering coroutine first suspends, so
        concurrent requests see it. A live registration is never replaced;
        returns False in that case.

        The entry is removed when the future settles or after the inflight
        timeout, whichever comes first.
        """
        if self.get_inflight(key) is not None:
            return False

        call = InflightCall(key=key, future=future, started_at=self._clock())
        self._inflight[key] = call

        loop = future.get_loop()
        call.timer = loop.call_later(self.inflight_timeout_seconds, self._drop_inflight, call)
        future.add_done_callback(lambda _f: self._drop_inflight(call))
        return True

    def get_inflight(self, key: str) -> "Optional[asyncio.Future[Any]]":
        """Return the pending future for ``key`` if one is registered and fresh."""
        call = self._inflight.get(key)
        if call is None:
            return None

        if self._is_stale(call):
            self._drop_inflight(call)
            return None

        return call.future

    def inflight_count(self) -> int:
        return len(self._inflight)

    def _is_stale(self, call: InflightCall) -> bool:
        return call.future.done() or (
            self._clock() - call.started_at >= self.inflight_timeout_seconds
        )

    def _drop_inflight(self, call: InflightCall) -> None:
        if call.timer is not None:
            call.timer.cancel()
        # Only remove our own registration, never a newer one for the same key
        if self._inflight.get(call.key) is call:
            del self._inflight[call.key]

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def sweep(self) -> int:
        """Remove expired entries and stale inflight calls. Returns entries removed."""
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items()
            if now - entry.inserted_at >= self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]

        for call in [c for c in self._inflight.values() if self._is_stale(c)]:
            self._drop_inflight(call)

        if expired:
            cache_evictions_total.labels(reason="ttl").inc(len(expired))
            logger.info("Cache sweep removed expired entries", removed=len(expired))

        return len(expired)

    def stats(self) -> dict[str, Any]:
        """Cache statistics for the stats endpoint."""
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "percent_used": round(len(self._entries) / self.max_size * 100, 2),
            "inflight": len(self._inflight),
            "ttl_seconds": self.ttl_seconds,
        }
