"""Warm the aggregator shortly after process start."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from catalog_cache.services.aggregator import CatalogAggregator

logger = logging.getLogger(__name__)


class DataPreloader:
    """Start the essential load before any UI surface asks for it.

    A short delay lets the rest of the application finish starting up first.
    Preload failures are logged only; the next consumer simply retries.
    """

    def __init__(self, aggregator: CatalogAggregator, *, delay_seconds: float = 0.5) -> None:
        self._aggregator = aggregator
        self._delay = max(0.0, delay_seconds)
        self._task: Optional[asyncio.Task[None]] = None

    def start_preloading(self) -> "asyncio.Task[None]":
        if self._task is None:
            self._task = asyncio.create_task(self._preload(), name="catalog_preload")
        return self._task

    async def _preload(self) -> None:
        if self._delay:
            await asyncio.sleep(self._delay)
        try:
            await self._aggregator.load_all()
        except Exception as exc:
            logger.error("Catalog preloading failed: %s", exc)
            return
        logger.info("Catalog data preloaded")

    def is_preloading_active(self) -> bool:
        running = self._task is not None and not self._task.done()
        return running or self._aggregator.is_data_loading()

    def is_data_loaded(self) -> bool:
        return self._aggregator.is_data_loaded()

    async def wait_for_preloading(self) -> None:
        if self._task is not None:
            await asyncio.wait({self._task})

    async def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass


__all__ = ["DataPreloader"]
