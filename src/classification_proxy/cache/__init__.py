"""
Result cache.

- result_cache.py: preference-aware label cache with TTL, lazy LRU and
  inflight deduplication
"""

from classification_proxy.cache.result_cache import (
    CacheEntry,
    InflightCall,
    ResultCache,
    fnv1a_64,
    make_cache_key,
)

__all__ = [
    "CacheEntry",
    "InflightCall",
    "ResultCache",
    "fnv1a_64",
    "make_cache_key",
]
