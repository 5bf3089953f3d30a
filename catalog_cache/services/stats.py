"""Landing page statistics derived from the full catalog tier."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Any, Iterable, Optional

from catalog_cache.cache.keys import CacheKeys, CacheTTL
from catalog_cache.cache.persistent import PersistentCache
from catalog_cache.domain.catalog import Record
from catalog_cache.services.aggregator import CatalogAggregator

logger = logging.getLogger(__name__)

REVIEW_COUNT_FIELD = "review_count"


@dataclass(frozen=True)
class MainPageStats:
    courses_count: int
    instructors_count: int
    reviews_count: int

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["MainPageStats"]:
        if not isinstance(payload, dict):
            return None
        try:
            return cls(
                courses_count=int(payload["courses_count"]),
                instructors_count=int(payload["instructors_count"]),
                reviews_count=int(payload["reviews_count"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


def _review_count(record: Record) -> int:
    try:
        return int(record.get(REVIEW_COUNT_FIELD) or 0)
    except (TypeError, ValueError):
        return 0


def _with_reviews(records: Iterable[Record]) -> int:
    return sum(1 for record in records if _review_count(record) > 0)


class MainPageStatsService:
    """Counts of reviewed courses/instructors and total reviews.

    Results are kept in the durable cache with the statistics TTL.
    """

    def __init__(
        self,
        aggregator: CatalogAggregator,
        cache: PersistentCache,
        *,
        ttl: timedelta = CacheTTL.STATS_DATA,
    ) -> None:
        self._aggregator = aggregator
        self._cache = cache
        self._ttl = ttl

    async def get_stats(self) -> MainPageStats:
        cached = MainPageStats.from_payload(await self._cache.get(CacheKeys.MAIN_PAGE_STATS))
        if cached is not None:
            return cached

        courses = await self._aggregator.get_all_courses()
        instructors = await self._aggregator.get_all_instructors()
        stats = MainPageStats(
            courses_count=_with_reviews(courses),
            instructors_count=_with_reviews(instructors),
            reviews_count=sum(_review_count(course) for course in courses),
        )
        await self._cache.set(CacheKeys.MAIN_PAGE_STATS, asdict(stats), ttl=self._ttl)
        logger.debug("Main page stats computed: %s", stats)
        return stats

    async def invalidate(self) -> None:
        await self._cache.delete(CacheKeys.MAIN_PAGE_STATS)


__all__ = ["MainPageStats", "MainPageStatsService", "REVIEW_COUNT_FIELD"]
