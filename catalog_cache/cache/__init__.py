"""Durable cache layer: key-value backends, versioned TTL cache and sweeper."""

from catalog_cache.cache.keys import CacheKeys, CacheTTL
from catalog_cache.cache.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    build_kv_store,
)
from catalog_cache.cache.persistent import CacheEntry, CacheMetrics, CacheStats, PersistentCache
from catalog_cache.cache.sweeper import CacheSweeper

__all__ = [
    "CacheEntry",
    "CacheKeys",
    "CacheMetrics",
    "CacheStats",
    "CacheSweeper",
    "CacheTTL",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "PersistentCache",
    "RedisKeyValueStore",
    "build_kv_store",
]
