"""Catalog kinds, record identity and merge helpers.

Records are plain JSON-compatible mappings as served by the remote source.
Only the identity field of each kind is relied upon here; every other field
is carried through untouched.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Tuple

Record = Dict[str, Any]


class CatalogKind(str, Enum):
    COURSES = "courses"
    INSTRUCTORS = "instructors"

    @property
    def identity_field(self) -> str:
        return _IDENTITY_FIELDS[self]

    @property
    def search_fields(self) -> Tuple[str, ...]:
        return _SEARCH_FIELDS[self]


class EssentialKind(str, Enum):
    POPULAR_COURSES = "popular_courses"
    POPULAR_INSTRUCTORS = "popular_instructors"
    TOP_COURSES = "top_courses"
    TOP_INSTRUCTORS = "top_instructors"

    @property
    def catalog_kind(self) -> CatalogKind:
        if self in (EssentialKind.POPULAR_COURSES, EssentialKind.TOP_COURSES):
            return CatalogKind.COURSES
        return CatalogKind.INSTRUCTORS

    @classmethod
    def for_catalog(cls, kind: CatalogKind) -> Tuple["EssentialKind", "EssentialKind"]:
        """Popular and top lists belonging to ``kind``, in display order."""

        if kind is CatalogKind.COURSES:
            return cls.POPULAR_COURSES, cls.TOP_COURSES
        return cls.POPULAR_INSTRUCTORS, cls.TOP_INSTRUCTORS


_IDENTITY_FIELDS = {
    CatalogKind.COURSES: "course_code",
    CatalogKind.INSTRUCTORS: "name",
}

_SEARCH_FIELDS = {
    CatalogKind.COURSES: ("course_title", "course_code", "course_department"),
    CatalogKind.INSTRUCTORS: ("name", "email", "department"),
}


def identity_of(kind: CatalogKind, record: Record) -> str:
    """Stable identity key of ``record``; raises ``KeyError`` when missing."""

    return str(record[kind.identity_field])


def dedupe_by_identity(kind: CatalogKind, *groups: Iterable[Record]) -> List[Record]:
    """Concatenate ``groups`` keeping the first record seen for each identity."""

    seen: set[str] = set()
    merged: List[Record] = []
    for group in groups:
        for record in group:
            key = identity_of(kind, record)
            if key in seen:
                continue
            seen.add(key)
            merged.append(record)
    return merged


def merge_enriched(kind: CatalogKind, current: List[Record], enriched: List[Record]) -> List[Record]:
    """Replace ``current`` by ``enriched`` without dropping any visible item.

    The enriched order wins. Records present only in ``current`` are kept at
    the end, so the visible count never decreases.
    """

    enriched_keys = {identity_of(kind, record) for record in enriched}
    leftovers = [record for record in current if identity_of(kind, record) not in enriched_keys]
    return [*enriched, *leftovers]


__all__ = [
    "CatalogKind",
    "EssentialKind",
    "Record",
    "dedupe_by_identity",
    "identity_of",
    "merge_enriched",
]
