"""
Persistence Caching - Read Memoization and Key/Value Store

Components:
- DuplicateQueryCache: memoized reads keyed by query shape
- CacheStore / ArrayCacheStore: key/value store for readiness probes
"""

from .duplicate_cache import DuplicateQueryCache
from .cache_store import CacheStore, ArrayCacheStore

__all__ = ["DuplicateQueryCache", "CacheStore", "ArrayCacheStore"]
