import asyncio
import copy
import os
from collections import Counter
from datetime import timedelta
from typing import Dict, List, Optional, Set

import pytest

TEST_ENV = {
    "ENVIRONMENT": "test",
    "REDIS_URL": "",
    "CATALOG_API_BASE": "",
    "CACHE_PREFIX": "catalog_cache",
    "CACHE_VERSION": "1.0.0",
    "STARTUP_PRELOAD_DELAY_SECONDS": "0",
    "PRELOAD_DELAY_MS": "20",
    "LOG_JSON": "0",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value

from catalog_cache.cache.kv_store import InMemoryKeyValueStore
from catalog_cache.cache.persistent import PersistentCache
from catalog_cache.core.errors import RemoteFault
from catalog_cache.domain.catalog import CatalogKind, EssentialKind, Record
from catalog_cache.services.aggregator import CatalogAggregator


@pytest.fixture(scope="session", autouse=True)
def _set_test_env():
    """Force deterministic env for tests and reset cached settings."""

    for key, value in TEST_ENV.items():
        os.environ[key] = value

    from catalog_cache.core import settings as settings_module

    settings_module.get_settings.cache_clear()
    yield
    settings_module.get_settings.cache_clear()


COURSES: List[Record] = [
    {
        "course_code": "CS101",
        "course_title": "Intro to Programming",
        "course_department": "Computer Science",
        "review_count": 5,
        "average_gpa": 3.4,
    },
    {
        "course_code": "CS202",
        "course_title": "Data Structures",
        "course_department": "Computer Science",
        "review_count": 3,
        "average_gpa": 3.1,
    },
    {
        "course_code": "MA101",
        "course_title": "Calculus I",
        "course_department": "Mathematics",
        "review_count": 0,
        "average_gpa": 0,
    },
    {
        "course_code": "HI210",
        "course_title": "Modern History",
        "course_department": "History",
        "review_count": 2,
        "average_gpa": 3.8,
    },
]

INSTRUCTORS: List[Record] = [
    {"name": "Alice Chan", "email": "alice@example.edu", "department": "Computer Science", "review_count": 4},
    {"name": "Bob Lee", "email": "bob@example.edu", "department": "Mathematics", "review_count": 0},
    {"name": "Carol Ng", "email": "carol@example.edu", "department": "History", "review_count": 1},
]


def _summary(kind: CatalogKind, record: Record) -> Record:
    if kind is CatalogKind.COURSES:
        return {"course_code": record["course_code"], "course_title": record["course_title"]}
    return {"name": record["name"]}


ESSENTIAL_PICKS: Dict[EssentialKind, List[int]] = {
    EssentialKind.POPULAR_COURSES: [0, 1],
    EssentialKind.TOP_COURSES: [1, 3],
    EssentialKind.POPULAR_INSTRUCTORS: [0, 2],
    EssentialKind.TOP_INSTRUCTORS: [2, 1],
}


class FakeClock:
    """Epoch-millisecond clock advanced by hand."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += int(delta.total_seconds() * 1000)


class FakeSource:
    """In-process catalog source counting every call.

    ``fail`` holds operation names (``essential``, ``full``, ``detail``) that
    raise ``RemoteFault``; the gates hold calls until released.
    """

    def __init__(self) -> None:
        self.courses = copy.deepcopy(COURSES)
        self.instructors = copy.deepcopy(INSTRUCTORS)
        self.calls: Counter = Counter()
        self.fail: Set[str] = set()
        self.essential_gate: Optional[asyncio.Event] = None
        self.full_gate: Optional[asyncio.Event] = None
        self.detail_gate: Optional[asyncio.Event] = None
        self.closed = False

    def _records(self, kind: CatalogKind) -> List[Record]:
        return self.courses if kind is CatalogKind.COURSES else self.instructors

    async def fetch_essential(self, kind: EssentialKind) -> List[Record]:
        self.calls["essential"] += 1
        self.calls[f"essential:{kind.value}"] += 1
        if self.essential_gate is not None:
            await self.essential_gate.wait()
        if "essential" in self.fail:
            raise RemoteFault(f"fetch_essential({kind.value})", "boom")
        records = self._records(kind.catalog_kind)
        return [_summary(kind.catalog_kind, records[idx]) for idx in ESSENTIAL_PICKS[kind]]

    async def fetch_full(self, kind: CatalogKind) -> List[Record]:
        self.calls["full"] += 1
        self.calls[f"full:{kind.value}"] += 1
        if self.full_gate is not None:
            await self.full_gate.wait()
        if "full" in self.fail:
            raise RemoteFault(f"fetch_full({kind.value})", "boom")
        return copy.deepcopy(self._records(kind))

    async def fetch_detail(self, kind: CatalogKind, item_id: str) -> Record:
        self.calls["detail"] += 1
        if self.detail_gate is not None:
            await self.detail_gate.wait()
        if "detail" in self.fail:
            raise RemoteFault(f"fetch_detail({kind.value}, {item_id})", "boom")
        field = kind.identity_field
        for record in self._records(kind):
            if str(record[field]).lower() == str(item_id).lower():
                return {**record, "detail": True}
        raise RemoteFault(f"fetch_detail({kind.value}, {item_id})", "not found")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def cache(kv_store: InMemoryKeyValueStore, clock: FakeClock) -> PersistentCache:
    return PersistentCache(kv_store, clock=clock)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def aggregator(source: FakeSource, cache: PersistentCache) -> CatalogAggregator:
    return CatalogAggregator(source, cache=cache)
