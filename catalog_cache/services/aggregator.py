"""Shared in-memory catalog data for every UI surface.

The aggregator holds two independent tiers:

- essential: four bounded lists (popular and top-rated courses/instructors)
  small enough for a first paint
- full: the complete course and instructor lists used for search and the
  catalog pages

Each tier is a ``SingleFlight`` cell, so concurrent callers share one load.
The full tier is only attempted once the essential tier is ready. Nothing
ever regresses to unloaded except through ``force_reload()``.

Construct one instance per process (see ``catalog_cache.context``) and pass
it to consumers; ``build_aggregator`` creates isolated instances for tests.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from catalog_cache.cache.keys import CacheKeys, CacheTTL
from catalog_cache.cache.persistent import PersistentCache
from catalog_cache.core.singleflight import SingleFlight
from catalog_cache.domain.catalog import CatalogKind, EssentialKind, Record
from catalog_cache.services.remote import CatalogSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EssentialDataset:
    popular_courses: List[Record] = field(default_factory=list)
    popular_instructors: List[Record] = field(default_factory=list)
    top_courses: List[Record] = field(default_factory=list)
    top_instructors: List[Record] = field(default_factory=list)

    def for_kind(self, kind: EssentialKind) -> List[Record]:
        return {
            EssentialKind.POPULAR_COURSES: self.popular_courses,
            EssentialKind.POPULAR_INSTRUCTORS: self.popular_instructors,
            EssentialKind.TOP_COURSES: self.top_courses,
            EssentialKind.TOP_INSTRUCTORS: self.top_instructors,
        }[kind]


@dataclass(frozen=True)
class FullDataset:
    courses: List[Record] = field(default_factory=list)
    instructors: List[Record] = field(default_factory=list)

    def for_kind(self, kind: CatalogKind) -> List[Record]:
        if kind is CatalogKind.COURSES:
            return self.courses
        return self.instructors


@dataclass(frozen=True)
class LoadingProgress:
    stage: int
    total: int
    description: str


_ESSENTIAL_ORDER = (
    EssentialKind.POPULAR_COURSES,
    EssentialKind.POPULAR_INSTRUCTORS,
    EssentialKind.TOP_COURSES,
    EssentialKind.TOP_INSTRUCTORS,
)


class CatalogAggregator:
    """Process-wide holder of the essential and full catalog tiers."""

    def __init__(
        self,
        source: CatalogSource,
        *,
        cache: Optional[PersistentCache] = None,
        list_ttl: timedelta = CacheTTL.LANDING_PAGE_DATA,
        full_tier_ttl: Optional[timedelta] = None,
    ) -> None:
        self._source = source
        self._cache = cache
        self._list_ttl = list_ttl
        self._essential: SingleFlight[EssentialDataset] = SingleFlight("essential")
        self._full: SingleFlight[FullDataset] = SingleFlight("full", ttl=full_tier_ttl)

    # State introspection -------------------------------------------------

    def is_data_loaded(self) -> bool:
        return self._essential.is_ready()

    def is_data_loading(self) -> bool:
        return self._essential.is_in_flight()

    def is_full_data_loaded(self) -> bool:
        return self._full.is_ready()

    def is_full_data_loading(self) -> bool:
        return self._full.is_in_flight()

    def loading_progress(self) -> LoadingProgress:
        if self._full.is_ready():
            return LoadingProgress(3, 3, "loaded")
        if self._essential.is_ready():
            return LoadingProgress(2, 3, "loading complete dataset")
        return LoadingProgress(1, 3, "loading core data")

    # Essential tier ------------------------------------------------------

    def load_all(self) -> "asyncio.Future[EssentialDataset]":
        """Start (or join) the essential load; resolved immediately when ready."""

        return self._essential.run(self._load_essential)

    async def _load_essential(self) -> EssentialDataset:
        cached = await self._read_cached_essential()
        if cached is not None:
            logger.info("Essential catalog data restored from durable cache")
            return cached
        return await self._fetch_essential()

    async def _reload_essential(self) -> EssentialDataset:
        await self._purge_cache()
        return await self._fetch_essential()

    async def _fetch_essential(self) -> EssentialDataset:
        generation = self._essential.generation
        logger.info("Loading essential catalog data")
        lists = await asyncio.gather(*(self._source.fetch_essential(kind) for kind in _ESSENTIAL_ORDER))
        dataset = EssentialDataset(*lists)
        # a reload started meanwhile owns the durable copy now
        if self._essential.generation == generation:
            for kind, records in zip(_ESSENTIAL_ORDER, lists):
                await self._write_cache(CacheKeys.essential(kind), records)
        logger.info(
            "Essential catalog data loaded",
            extra={"sizes": {kind.value: len(records) for kind, records in zip(_ESSENTIAL_ORDER, lists)}},
        )
        return dataset

    async def _read_cached_essential(self) -> Optional[EssentialDataset]:
        if self._cache is None:
            return None
        lists: List[List[Record]] = []
        for kind in _ESSENTIAL_ORDER:
            records = await self._cache.get(CacheKeys.essential(kind))
            if not isinstance(records, list):
                return None
            lists.append(records)
        return EssentialDataset(*lists)

    async def _essential_list(self, kind: EssentialKind) -> List[Record]:
        dataset = await self.load_all()
        return copy.deepcopy(dataset.for_kind(kind))

    async def get_popular_courses(self) -> List[Record]:
        return await self._essential_list(EssentialKind.POPULAR_COURSES)

    async def get_popular_instructors(self) -> List[Record]:
        return await self._essential_list(EssentialKind.POPULAR_INSTRUCTORS)

    async def get_top_courses(self) -> List[Record]:
        return await self._essential_list(EssentialKind.TOP_COURSES)

    async def get_top_instructors(self) -> List[Record]:
        return await self._essential_list(EssentialKind.TOP_INSTRUCTORS)

    async def get_essential(self, kind: EssentialKind) -> List[Record]:
        return await self._essential_list(kind)

    # Full tier -----------------------------------------------------------

    def load_full(self) -> "asyncio.Future[FullDataset]":
        return self._full.run(self._load_full)

    async def _load_full(self) -> FullDataset:
        await self.load_all()
        generation = self._full.generation
        cache = self._cache
        if cache is not None:
            courses = await cache.get(CacheKeys.full(CatalogKind.COURSES))
            instructors = await cache.get(CacheKeys.full(CatalogKind.INSTRUCTORS))
            if isinstance(courses, list) and isinstance(instructors, list):
                logger.info("Full catalog data restored from durable cache")
                return FullDataset(courses=courses, instructors=instructors)

        logger.info("Loading full catalog data")
        courses, instructors = await asyncio.gather(
            self._source.fetch_full(CatalogKind.COURSES),
            self._source.fetch_full(CatalogKind.INSTRUCTORS),
        )
        if self._full.generation == generation:
            await self._write_cache(CacheKeys.full(CatalogKind.COURSES), courses)
            await self._write_cache(CacheKeys.full(CatalogKind.INSTRUCTORS), instructors)
        logger.info(
            "Full catalog data loaded: %d courses, %d instructors",
            len(courses),
            len(instructors),
        )
        return FullDataset(courses=courses, instructors=instructors)

    async def _full_list(self, kind: CatalogKind) -> List[Record]:
        await self.load_all()
        dataset = await self.load_full()
        return copy.deepcopy(dataset.for_kind(kind))

    async def get_all_courses(self) -> List[Record]:
        return await self._full_list(CatalogKind.COURSES)

    async def get_all_instructors(self) -> List[Record]:
        return await self._full_list(CatalogKind.INSTRUCTORS)

    async def get_all(self, kind: CatalogKind) -> List[Record]:
        return await self._full_list(kind)

    # Invalidation --------------------------------------------------------

    def force_reload(self) -> "asyncio.Future[EssentialDataset]":
        """Drop both tiers (memory and durable copies) and start a fresh load.

        Call after any data-mutating action. The returned future resolves
        when the new essential tier is ready.
        """

        self._essential.reset()
        self._full.reset()
        logger.info("Forcing catalog reload")
        return self._essential.run(self._reload_essential)

    async def _purge_cache(self) -> None:
        if self._cache is None:
            return
        for kind in _ESSENTIAL_ORDER:
            await self._cache.delete(CacheKeys.essential(kind))
        for catalog_kind in CatalogKind:
            await self._cache.delete(CacheKeys.full(catalog_kind))

    async def _write_cache(self, key: str, records: List[Record]) -> None:
        if self._cache is not None:
            await self._cache.set(key, records, ttl=self._list_ttl)


def build_aggregator(
    source: CatalogSource,
    *,
    cache: Optional[PersistentCache] = None,
    list_ttl: timedelta = CacheTTL.LANDING_PAGE_DATA,
    full_tier_ttl: Optional[timedelta] = None,
) -> CatalogAggregator:
    """Factory helper producing an isolated aggregator."""

    return CatalogAggregator(source, cache=cache, list_ttl=list_ttl, full_tier_ttl=full_tier_ttl)


__all__ = [
    "CatalogAggregator",
    "EssentialDataset",
    "FullDataset",
    "LoadingProgress",
    "build_aggregator",
]
