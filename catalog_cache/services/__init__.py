"""Catalog data services: remote source, aggregator and helpers around it."""

from catalog_cache.services.aggregator import (
    CatalogAggregator,
    EssentialDataset,
    FullDataset,
    LoadingProgress,
    build_aggregator,
)
from catalog_cache.services.details import DetailLoader
from catalog_cache.services.preloader import DataPreloader
from catalog_cache.services.remote import CatalogSource, HttpCatalogSource
from catalog_cache.services.stats import MainPageStats, MainPageStatsService

__all__ = [
    "CatalogAggregator",
    "CatalogSource",
    "DataPreloader",
    "DetailLoader",
    "EssentialDataset",
    "FullDataset",
    "HttpCatalogSource",
    "LoadingProgress",
    "MainPageStats",
    "MainPageStatsService",
    "build_aggregator",
]
