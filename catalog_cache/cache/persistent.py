"""Durable, versioned, TTL-based cache on top of a key-value store.

Every entry is stored as JSON ``{data, timestamp, ttl, version}`` under
``<prefix>_<key>``, with ``timestamp`` in epoch milliseconds and ``ttl`` in
milliseconds. An entry is only served when its version matches the current
version and it has not outlived its TTL. Anything else (stale, foreign
version, corrupt payload) is deleted on access and reported as a miss.

Storage failures never reach the caller: writes are dropped, reads miss.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Optional

from catalog_cache.cache.keys import CacheTTL
from catalog_cache.cache.kv_store import KeyValueStore
from catalog_cache.core.errors import StorageFault

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "catalog_cache"
DEFAULT_VERSION = "1.0.0"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry:
    """Serialized cache record."""

    data: Any
    timestamp: int
    ttl: int
    version: str

    def to_json(self) -> str:
        return json.dumps(
            {
                "data": self.data,
                "timestamp": self.timestamp,
                "ttl": self.ttl,
                "version": self.version,
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, payload: str) -> "CacheEntry":
        raw = json.loads(payload)
        if not isinstance(raw, dict):
            raise ValueError("cache entry is not an object")
        timestamp = raw["timestamp"]
        ttl = raw["ttl"]
        version = raw["version"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("cache entry timestamp is not a number")
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
            raise ValueError("cache entry ttl is not a number")
        if not isinstance(version, str):
            raise ValueError("cache entry version is not a string")
        return cls(data=raw.get("data"), timestamp=int(timestamp), ttl=int(ttl), version=version)

    def is_expired(self, now: int) -> bool:
        return now - self.timestamp > self.ttl


@dataclass
class CacheMetrics:
    """Cache performance counters."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total * 100

    @property
    def total_operations(self) -> int:
        return self.hits + self.misses + self.sets + self.deletes


@dataclass(frozen=True)
class CacheStats:
    total_entries: int
    total_size_bytes: int


class PersistentCache:
    """Namespaced durable cache with version and TTL invalidation."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        prefix: str = DEFAULT_PREFIX,
        version: str = DEFAULT_VERSION,
        default_ttl: timedelta = CacheTTL.LANDING_PAGE_DATA,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._namespace = f"{prefix.rstrip('_')}_"
        self._version = version
        self._default_ttl = default_ttl
        self._clock = clock
        self.metrics = CacheMetrics()

    @property
    def version(self) -> str:
        return self._version

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def storage_key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    async def set(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> bool:
        """Store ``value``; returns False when the write was dropped."""

        ttl_ms = int((self._default_ttl if ttl is None else ttl).total_seconds() * 1000)
        entry = CacheEntry(data=value, timestamp=self._clock(), ttl=ttl_ms, version=self._version)
        try:
            payload = entry.to_json()
            await self._store.set(self.storage_key(key), payload)
        except (StorageFault, TypeError, ValueError) as exc:
            self.metrics.errors += 1
            logger.warning("Persistent cache set failed for %s: %s", key, exc)
            return False

        self.metrics.sets += 1
        logger.debug("Persistent cache SET %s (ttl %ds)", key, ttl_ms // 1000)
        return True

    async def get(self, key: str) -> Optional[Any]:
        storage_key = self.storage_key(key)
        try:
            payload = await self._store.get(storage_key)
        except StorageFault as exc:
            self.metrics.errors += 1
            self.metrics.misses += 1
            logger.warning("Persistent cache get failed for %s: %s", key, exc)
            return None

        if payload is None:
            self.metrics.misses += 1
            return None

        try:
            entry = CacheEntry.from_json(payload)
        except (ValueError, TypeError, KeyError) as exc:
            logger.warning("Corrupt persistent cache entry %s, purging: %s", key, exc)
            await self._miss_and_evict(storage_key)
            return None

        if entry.version != self._version:
            logger.info(
                "Cache version mismatch for %s (%s != %s), purging",
                key,
                entry.version,
                self._version,
            )
            await self._miss_and_evict(storage_key)
            return None

        if entry.is_expired(self._clock()):
            logger.info("Cache expired for %s, purging", key)
            await self._miss_and_evict(storage_key)
            return None

        self.metrics.hits += 1
        logger.debug("Persistent cache HIT %s", key)
        return entry.data

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    async def delete(self, key: str) -> None:
        try:
            await self._store.delete(self.storage_key(key))
        except StorageFault as exc:
            self.metrics.errors += 1
            logger.warning("Persistent cache delete failed for %s: %s", key, exc)
            return
        self.metrics.deletes += 1

    async def clear(self) -> int:
        """Remove every entry of this namespace; returns the number removed."""

        try:
            keys = await self._store.keys(self._namespace)
            for storage_key in keys:
                await self._store.delete(storage_key)
        except StorageFault as exc:
            self.metrics.errors += 1
            logger.warning("Persistent cache clear failed: %s", exc)
            return 0

        logger.info("Cleared %d persistent cache entries", len(keys))
        return len(keys)

    async def cleanup(self) -> int:
        """Purge every entry failing the version or TTL check."""

        now = self._clock()
        purged = 0
        try:
            keys = await self._store.keys(self._namespace)
        except StorageFault as exc:
            self.metrics.errors += 1
            logger.warning("Persistent cache cleanup failed: %s", exc)
            return 0

        for storage_key in keys:
            try:
                payload = await self._store.get(storage_key)
            except StorageFault as exc:
                self.metrics.errors += 1
                logger.warning("Persistent cache cleanup skipped %s: %s", storage_key, exc)
                continue
            if payload is None:
                continue
            try:
                entry = CacheEntry.from_json(payload)
                keep = entry.version == self._version and not entry.is_expired(now)
            except (ValueError, TypeError, KeyError):
                keep = False
            if not keep and await self._evict(storage_key):
                purged += 1

        if purged:
            logger.info("Cleaned up %d expired/invalid cache entries", purged)
        return purged

    async def stats(self) -> CacheStats:
        total_entries = 0
        total_size = 0
        try:
            for storage_key in await self._store.keys(self._namespace):
                payload = await self._store.get(storage_key)
                if payload is None:
                    continue
                total_entries += 1
                total_size += len(payload.encode("utf-8"))
        except StorageFault as exc:
            self.metrics.errors += 1
            logger.warning("Failed to get cache stats: %s", exc)
        return CacheStats(total_entries=total_entries, total_size_bytes=total_size)

    async def _miss_and_evict(self, storage_key: str) -> None:
        self.metrics.misses += 1
        await self._evict(storage_key)

    async def _evict(self, storage_key: str) -> bool:
        try:
            await self._store.delete(storage_key)
        except StorageFault as exc:
            self.metrics.errors += 1
            logger.warning("Failed to purge %s: %s", storage_key, exc)
            return False
        self.metrics.evictions += 1
        return True


__all__ = [
    "CacheEntry",
    "CacheMetrics",
    "CacheStats",
    "DEFAULT_PREFIX",
    "DEFAULT_VERSION",
    "PersistentCache",
    "now_ms",
]
