import asyncio

import pytest

from catalog_cache.cache.keys import CacheKeys
from catalog_cache.core.errors import RemoteFault
from catalog_cache.domain.catalog import CatalogKind, EssentialKind
from catalog_cache.services.aggregator import CatalogAggregator, build_aggregator


@pytest.mark.asyncio
async def test_concurrent_load_all_calls_fetch_once(aggregator, source) -> None:
    futures = [aggregator.load_all() for _ in range(5)]
    assert aggregator.is_data_loading()

    datasets = await asyncio.gather(*futures)

    assert source.calls["essential"] == 4
    for kind in EssentialKind:
        assert source.calls[f"essential:{kind.value}"] == 1
    assert all(dataset == datasets[0] for dataset in datasets)
    assert aggregator.is_data_loaded()
    assert not aggregator.is_data_loading()


@pytest.mark.asyncio
async def test_load_all_does_not_touch_full_tier(aggregator, source) -> None:
    await aggregator.load_all()

    assert source.calls["full"] == 0
    assert not aggregator.is_full_data_loaded()
    assert not aggregator.is_full_data_loading()


@pytest.mark.asyncio
async def test_full_tier_waits_for_essential_tier(aggregator, source) -> None:
    source.essential_gate = asyncio.Event()

    courses_task = asyncio.ensure_future(aggregator.get_all_courses())
    await asyncio.sleep(0.01)

    assert aggregator.is_data_loading()
    assert source.calls["full"] == 0

    source.essential_gate.set()
    courses = await courses_task

    assert [course["course_code"] for course in courses] == ["CS101", "CS202", "MA101", "HI210"]
    assert source.calls["full"] == 2
    assert aggregator.is_full_data_loaded()


@pytest.mark.asyncio
async def test_full_tier_loads_once_for_concurrent_consumers(aggregator, source) -> None:
    results = await asyncio.gather(
        aggregator.get_all_courses(),
        aggregator.get_all_instructors(),
        aggregator.get_all(CatalogKind.COURSES),
    )

    assert source.calls["full"] == 2
    assert len(results[0]) == 4
    assert len(results[1]) == 3
    assert results[0] == results[2]


@pytest.mark.asyncio
async def test_repeat_full_tier_call_is_served_from_memory(aggregator, source) -> None:
    first = await aggregator.get_all_courses()
    assert source.calls["full"] == 2
    assert source.calls["essential"] == 4

    second = await aggregator.get_all_courses()

    assert source.calls["full"] == 2
    assert source.calls["essential"] == 4
    assert second == first


@pytest.mark.asyncio
async def test_essential_accessors_return_independent_copies(aggregator) -> None:
    popular = await aggregator.get_popular_courses()
    popular.clear()

    again = await aggregator.get_popular_courses()
    assert [course["course_code"] for course in again] == ["CS101", "CS202"]

    again[0]["course_code"] = "MUTATED"
    assert (await aggregator.get_popular_courses())[0]["course_code"] == "CS101"


@pytest.mark.asyncio
async def test_each_essential_accessor_returns_its_list(aggregator) -> None:
    assert [r["course_code"] for r in await aggregator.get_top_courses()] == ["CS202", "HI210"]
    assert [r["name"] for r in await aggregator.get_popular_instructors()] == ["Alice Chan", "Carol Ng"]
    assert [r["name"] for r in await aggregator.get_top_instructors()] == ["Carol Ng", "Bob Lee"]
    assert await aggregator.get_essential(EssentialKind.TOP_COURSES) == await aggregator.get_top_courses()


@pytest.mark.asyncio
async def test_failed_load_resets_and_next_call_retries(aggregator, source) -> None:
    source.fail.add("essential")

    with pytest.raises(RemoteFault):
        await aggregator.load_all()

    assert not aggregator.is_data_loaded()
    assert not aggregator.is_data_loading()

    source.fail.clear()
    await aggregator.load_all()

    assert aggregator.is_data_loaded()
    assert source.calls["essential"] == 8


@pytest.mark.asyncio
async def test_full_tier_failure_keeps_essential_tier(aggregator, source) -> None:
    await aggregator.load_all()
    source.fail.add("full")

    with pytest.raises(RemoteFault):
        await aggregator.get_all_courses()

    assert aggregator.is_data_loaded()
    assert not aggregator.is_full_data_loaded()

    source.fail.clear()
    assert len(await aggregator.get_all_courses()) == 4


@pytest.mark.asyncio
async def test_loaded_lists_are_written_to_durable_cache(aggregator, cache) -> None:
    await aggregator.get_all_courses()

    for kind in EssentialKind:
        assert isinstance(await cache.get(CacheKeys.essential(kind)), list)
    assert len(await cache.get(CacheKeys.ALL_COURSES_WITH_STATS)) == 4
    assert len(await cache.get(CacheKeys.ALL_INSTRUCTORS_WITH_DETAILED_STATS)) == 3


@pytest.mark.asyncio
async def test_new_process_restores_from_durable_cache(aggregator, source, cache) -> None:
    await aggregator.get_all_instructors()
    assert source.calls["essential"] == 4
    assert source.calls["full"] == 2

    restarted = build_aggregator(source, cache=cache)
    await restarted.load_all()
    instructors = await restarted.get_all_instructors()

    assert len(instructors) == 3
    assert source.calls["essential"] == 4
    assert source.calls["full"] == 2


@pytest.mark.asyncio
async def test_force_reload_fetches_fresh_data(aggregator, source, cache) -> None:
    await aggregator.get_all_courses()
    source.courses[0]["course_title"] = "Programming Fundamentals"

    reload = aggregator.force_reload()
    assert not aggregator.is_data_loaded()
    assert not aggregator.is_full_data_loaded()
    await reload

    assert source.calls["essential"] == 8
    popular = await aggregator.get_popular_courses()
    assert popular[0]["course_title"] == "Programming Fundamentals"

    courses = await aggregator.get_all_courses()
    assert courses[0]["course_title"] == "Programming Fundamentals"
    assert source.calls["full"] == 4
    cached = await cache.get(CacheKeys.ALL_COURSES_WITH_STATS)
    assert cached[0]["course_title"] == "Programming Fundamentals"


@pytest.mark.asyncio
async def test_force_reload_during_load_wins(aggregator, source) -> None:
    source.essential_gate = asyncio.Event()
    first = aggregator.load_all()
    await asyncio.sleep(0)

    source.courses[0]["course_title"] = "Renamed"
    second = aggregator.force_reload()
    source.essential_gate.set()
    await asyncio.gather(first, second)

    popular = await aggregator.get_popular_courses()
    assert popular[0]["course_title"] == "Renamed"
    assert source.calls["essential"] == 8


@pytest.mark.asyncio
async def test_loading_progress_tracks_tiers(aggregator) -> None:
    assert aggregator.loading_progress().stage == 1
    await aggregator.load_all()
    assert aggregator.loading_progress().stage == 2
    await aggregator.load_full()
    progress = aggregator.loading_progress()
    assert (progress.stage, progress.total) == (3, 3)


@pytest.mark.asyncio
async def test_aggregator_works_without_durable_cache(source) -> None:
    aggregator = CatalogAggregator(source)
    await aggregator.load_all()
    assert len(await aggregator.get_all_courses()) == 4
