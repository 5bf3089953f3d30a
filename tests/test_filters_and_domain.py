import pytest

from catalog_cache.apps.ui.filters import filter_records
from catalog_cache.cache.keys import CacheKeys
from catalog_cache.domain.catalog import (
    CatalogKind,
    EssentialKind,
    dedupe_by_identity,
    identity_of,
    merge_enriched,
)

COURSES = [
    {"course_code": "CS101", "course_title": "Intro to Programming", "course_department": "Computer Science"},
    {"course_code": "MA101", "course_title": "Calculus I", "course_department": "Mathematics"},
    {"course_code": "HI210", "course_title": "Modern History", "course_department": None},
]


@pytest.mark.parametrize("term", ["", "   "])
def test_blank_term_keeps_everything_in_order(term: str) -> None:
    result = filter_records(COURSES, term, CatalogKind.COURSES.search_fields)
    assert result == COURSES
    assert result is not COURSES


def test_match_is_case_insensitive_substring_over_fields() -> None:
    fields = CatalogKind.COURSES.search_fields
    assert [r["course_code"] for r in filter_records(COURSES, "ER", fields)] == ["CS101", "HI210"]
    assert [r["course_code"] for r in filter_records(COURSES, "MATHEMATICS", fields)] == ["MA101"]
    assert [r["course_code"] for r in filter_records(COURSES, "hi2", fields)] == ["HI210"]


def test_surrounding_whitespace_is_part_of_the_term() -> None:
    fields = CatalogKind.COURSES.search_fields
    assert [r["course_code"] for r in filter_records(COURSES, "history", fields)] == ["HI210"]
    assert [r["course_code"] for r in filter_records(COURSES, " history", fields)] == ["HI210"]
    assert filter_records(COURSES, "history ", fields) == []
    assert [r["course_code"] for r in filter_records(COURSES, "calculus i", fields)] == ["MA101"]
    assert filter_records(COURSES, " calculus", fields) == []


def test_no_match_returns_empty_list() -> None:
    assert filter_records(COURSES, "zoology", CatalogKind.COURSES.search_fields) == []


def test_instructor_search_fields() -> None:
    instructors = [
        {"name": "Alice Chan", "email": "alice@example.edu", "department": "Computer Science"},
        {"name": "Bob Lee", "email": "bob@example.edu"},
    ]
    fields = CatalogKind.INSTRUCTORS.search_fields
    assert [r["name"] for r in filter_records(instructors, "bob@", fields)] == ["Bob Lee"]
    assert [r["name"] for r in filter_records(instructors, "science", fields)] == ["Alice Chan"]


def test_dedupe_keeps_first_occurrence() -> None:
    popular = [{"course_code": "CS101", "rank": 1}, {"course_code": "CS202", "rank": 2}]
    top = [{"course_code": "CS202", "rank": 9}, {"course_code": "HI210", "rank": 3}]

    merged = dedupe_by_identity(CatalogKind.COURSES, popular, top)

    assert [(r["course_code"], r["rank"]) for r in merged] == [("CS101", 1), ("CS202", 2), ("HI210", 3)]


def test_merge_enriched_never_drops_visible_items() -> None:
    current = [{"name": "Alice Chan"}, {"name": "Retired Prof"}]
    enriched = [{"name": "Bob Lee", "review_count": 1}, {"name": "Alice Chan", "review_count": 4}]

    merged = merge_enriched(CatalogKind.INSTRUCTORS, current, enriched)

    assert [r["name"] for r in merged] == ["Bob Lee", "Alice Chan", "Retired Prof"]
    assert merged[1]["review_count"] == 4


def test_identity_requires_identity_field() -> None:
    assert identity_of(CatalogKind.COURSES, {"course_code": "CS101"}) == "CS101"
    with pytest.raises(KeyError):
        identity_of(CatalogKind.INSTRUCTORS, {"email": "x@example.edu"})


def test_essential_kinds_map_to_catalog_kinds() -> None:
    assert EssentialKind.for_catalog(CatalogKind.COURSES) == (
        EssentialKind.POPULAR_COURSES,
        EssentialKind.TOP_COURSES,
    )
    assert EssentialKind.TOP_INSTRUCTORS.catalog_kind is CatalogKind.INSTRUCTORS


def test_cache_keys() -> None:
    assert CacheKeys.essential(EssentialKind.TOP_INSTRUCTORS) == "landing_top_instructors_gpa"
    assert CacheKeys.full(CatalogKind.COURSES) == "catalog_all_courses_with_stats"
    assert CacheKeys.detail(CatalogKind.INSTRUCTORS, " Alice Chan ") == "detail_instructors_alice-chan"
    assert CacheKeys.detail(CatalogKind.COURSES, "CS101") == CacheKeys.detail(CatalogKind.COURSES, "cs101")
