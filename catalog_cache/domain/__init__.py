"""Catalog domain helpers."""

from catalog_cache.domain.catalog import (
    CatalogKind,
    EssentialKind,
    Record,
    dedupe_by_identity,
    identity_of,
    merge_enriched,
)

__all__ = [
    "CatalogKind",
    "EssentialKind",
    "Record",
    "dedupe_by_identity",
    "identity_of",
    "merge_enriched",
]
