"""Periodic sweep of the durable cache built on APScheduler."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import SchedulerAlreadyRunningError

from catalog_cache.cache.keys import CacheTTL
from catalog_cache.cache.persistent import PersistentCache

logger = logging.getLogger(__name__)


class CacheSweeper:
    """Purge stale and foreign-version entries at start and then on an interval."""

    def __init__(
        self,
        cache: PersistentCache,
        *,
        interval: timedelta = CacheTTL.SWEEP_INTERVAL,
        scheduler: Optional[AsyncIOScheduler] = None,
        job_id: str = "catalog_cache:sweep",
    ) -> None:
        self._cache = cache
        self._interval = interval
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self._job_id = job_id
        self.runs = 0
        self.purged_total = 0

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    async def sweep(self) -> int:
        """Run one sweep; failures are logged, never raised."""

        try:
            purged = await self._cache.cleanup()
        except Exception:
            logger.exception("Durable cache sweep failed")
            return 0
        self.runs += 1
        self.purged_total += purged
        return purged

    async def start(self) -> None:
        await self.sweep()

        interval = max(int(self._interval.total_seconds()), 1)
        self._scheduler.add_job(
            self.sweep,
            "interval",
            seconds=interval,
            id=self._job_id,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=interval,
        )
        if not self._scheduler.running:
            try:
                self._scheduler.start()
            except SchedulerAlreadyRunningError:
                pass
        logger.info("Durable cache sweep scheduled every %ds", interval)

    async def shutdown(self) -> None:
        try:
            self._scheduler.remove_job(self._job_id)
        except JobLookupError:
            pass
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)


__all__ = ["CacheSweeper"]
