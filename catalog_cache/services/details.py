"""Read-through access to single-item detail records.

Detail records live in the durable cache under ``detail_<kind>_<id>`` so that
a prefetch triggered by hover intent turns the later navigation into a cache
hit. Concurrent reads of the same item share one remote fetch.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Dict, Optional

from catalog_cache.cache.keys import CacheKeys, CacheTTL
from catalog_cache.cache.persistent import PersistentCache
from catalog_cache.domain.catalog import CatalogKind, Record
from catalog_cache.services.remote import CatalogSource

logger = logging.getLogger(__name__)

_LOCKS_MAX = 1024


class DetailLoader:
    def __init__(
        self,
        source: CatalogSource,
        cache: PersistentCache,
        *,
        ttl: timedelta = CacheTTL.LANDING_PAGE_DATA,
    ) -> None:
        self._source = source
        self._cache = cache
        self._ttl = ttl
        self._locks_guard = asyncio.Lock()
        self._locks: Dict[str, asyncio.Lock] = {}
        self.fetches = 0

    async def _lock_for(self, key: str) -> asyncio.Lock:
        async with self._locks_guard:
            lock = self._locks.get(key)
            if lock is not None:
                return lock
            if len(self._locks) >= _LOCKS_MAX:
                # Clear-on-pressure keeps the table bounded
                self._locks = {k: v for k, v in self._locks.items() if v.locked()}
            lock = asyncio.Lock()
            self._locks[key] = lock
            return lock

    async def cached_detail(self, kind: CatalogKind, item_id: str) -> Optional[Record]:
        """Durable copy of the record, without touching the remote source."""

        value = await self._cache.get(CacheKeys.detail(kind, item_id))
        if isinstance(value, dict):
            return value
        return None

    async def get_detail(self, kind: CatalogKind, item_id: str) -> Record:
        """Return the detail record, fetching and caching it on a miss.

        Raises ``RemoteFault`` when the record is not cached and the fetch fails.
        """

        cached = await self.cached_detail(kind, item_id)
        if cached is not None:
            return cached

        key = CacheKeys.detail(kind, item_id)
        lock = await self._lock_for(key)
        async with lock:
            cached = await self.cached_detail(kind, item_id)
            if cached is not None:
                return cached
            self.fetches += 1
            record = await self._source.fetch_detail(kind, item_id)
            await self._cache.set(key, record, ttl=self._ttl)
            return record

    async def prefetch(self, kind: CatalogKind, item_id: str) -> bool:
        """Warm the durable cache; failures are logged and reported as False."""

        try:
            await self.get_detail(kind, item_id)
        except Exception as exc:
            logger.warning("Prefetch of %s %s failed: %s", kind.value, item_id, exc)
            return False
        return True


__all__ = ["DetailLoader"]
