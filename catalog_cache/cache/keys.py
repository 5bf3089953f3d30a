"""Logical cache keys and standard TTLs for the durable cache.

Keys are logical: the persistent cache adds the ``<app-prefix>_`` namespace.
Item identifiers are normalized so the preload path and the detail view
always agree on the key.
"""

from __future__ import annotations

from datetime import timedelta

from catalog_cache.domain.catalog import CatalogKind, EssentialKind


class CacheKeys:
    """Standard cache key patterns."""

    POPULAR_COURSES = "landing_popular_courses"
    POPULAR_INSTRUCTORS = "landing_popular_instructors"
    TOP_COURSES_BY_GPA = "landing_top_courses_gpa"
    TOP_INSTRUCTORS_BY_GPA = "landing_top_instructors_gpa"
    MAIN_PAGE_STATS = "landing_main_page_stats"
    ALL_COURSES_WITH_STATS = "catalog_all_courses_with_stats"
    ALL_INSTRUCTORS_WITH_DETAILED_STATS = "catalog_all_instructors_detailed_stats"

    @staticmethod
    def essential(kind: EssentialKind) -> str:
        return _ESSENTIAL_KEYS[kind]

    @staticmethod
    def full(kind: CatalogKind) -> str:
        return _FULL_KEYS[kind]

    @staticmethod
    def detail(kind: CatalogKind, item_id: str) -> str:
        normalized = str(item_id).strip().lower().replace(" ", "-")
        return f"detail_{kind.value}_{normalized}"


_ESSENTIAL_KEYS = {
    EssentialKind.POPULAR_COURSES: CacheKeys.POPULAR_COURSES,
    EssentialKind.POPULAR_INSTRUCTORS: CacheKeys.POPULAR_INSTRUCTORS,
    EssentialKind.TOP_COURSES: CacheKeys.TOP_COURSES_BY_GPA,
    EssentialKind.TOP_INSTRUCTORS: CacheKeys.TOP_INSTRUCTORS_BY_GPA,
}

_FULL_KEYS = {
    CatalogKind.COURSES: CacheKeys.ALL_COURSES_WITH_STATS,
    CatalogKind.INSTRUCTORS: CacheKeys.ALL_INSTRUCTORS_WITH_DETAILED_STATS,
}


class CacheTTL:
    """Standard cache TTL values."""

    LANDING_PAGE_DATA = timedelta(minutes=30)  # list/dashboard data
    STATS_DATA = timedelta(minutes=15)  # statistics-only data
    SWEEP_INTERVAL = timedelta(minutes=30)


__all__ = ["CacheKeys", "CacheTTL"]
