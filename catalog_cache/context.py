"""Process-wide wiring of the catalog cache components.

Build one ``CatalogContext`` at startup and hand its members to consumers;
every UI surface shares the same aggregator and durable cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from catalog_cache.apps.ui.controller import ProgressiveLoadingController
from catalog_cache.apps.ui.intent import IntentPreloader
from catalog_cache.cache.kv_store import KeyValueStore, build_kv_store
from catalog_cache.cache.persistent import PersistentCache
from catalog_cache.cache.sweeper import CacheSweeper
from catalog_cache.core.settings import Settings, get_settings
from catalog_cache.domain.catalog import CatalogKind
from catalog_cache.services.aggregator import CatalogAggregator
from catalog_cache.services.details import DetailLoader
from catalog_cache.services.preloader import DataPreloader
from catalog_cache.services.remote import CatalogSource, HttpCatalogSource
from catalog_cache.services.stats import MainPageStatsService

logger = logging.getLogger(__name__)


@dataclass
class CatalogContext:
    settings: Settings
    kv_store: KeyValueStore
    cache: PersistentCache
    sweeper: CacheSweeper
    source: CatalogSource
    aggregator: CatalogAggregator
    details: DetailLoader
    preloader: DataPreloader
    stats: MainPageStatsService

    def controller(self, kind: CatalogKind, *, search_term: str = "") -> ProgressiveLoadingController:
        return ProgressiveLoadingController(
            self.aggregator,
            self.source,
            kind,
            cache=self.cache,
            search_term=search_term,
        )

    def intent_preloader(self) -> IntentPreloader:
        return IntentPreloader(self.details, delay_seconds=self.settings.preload_delay_ms / 1000.0)

    async def start(self) -> None:
        await self.sweeper.start()
        self.preloader.start_preloading()
        logger.info(
            "Catalog cache started",
            extra={"environment": self.settings.environment, "cache_version": self.settings.cache_version},
        )

    async def close(self) -> None:
        await self.preloader.stop()
        await self.sweeper.shutdown()
        close_source = getattr(self.source, "close", None)
        if close_source is not None:
            await close_source()
        await self.kv_store.close()


def build_context(
    settings: Optional[Settings] = None,
    *,
    source: Optional[CatalogSource] = None,
    kv_store: Optional[KeyValueStore] = None,
) -> CatalogContext:
    settings = settings or get_settings()
    store = kv_store or build_kv_store(redis_url=settings.redis_url or None)
    cache = PersistentCache(
        store,
        prefix=settings.cache_prefix,
        version=settings.cache_version,
        default_ttl=settings.list_ttl,
    )
    if source is None:
        source = HttpCatalogSource(
            settings.catalog_api_base,
            timeout=settings.catalog_api_timeout,
            essential_limit=settings.essential_limit,
        )
    aggregator = CatalogAggregator(
        source,
        cache=cache,
        list_ttl=settings.list_ttl,
        full_tier_ttl=settings.full_tier_ttl,
    )
    return CatalogContext(
        settings=settings,
        kv_store=store,
        cache=cache,
        sweeper=CacheSweeper(cache, interval=settings.sweep_interval),
        source=source,
        aggregator=aggregator,
        details=DetailLoader(source, cache, ttl=settings.list_ttl),
        preloader=DataPreloader(aggregator, delay_seconds=settings.startup_preload_delay_seconds),
        stats=MainPageStatsService(aggregator, cache, ttl=settings.stats_ttl),
    )


__all__ = ["CatalogContext", "build_context"]
