"""Consumer-side helpers for catalog pages."""

from catalog_cache.apps.ui.controller import ControllerSnapshot, ProgressiveLoadingController
from catalog_cache.apps.ui.filters import filter_records
from catalog_cache.apps.ui.intent import IntentPreloader

__all__ = [
    "ControllerSnapshot",
    "IntentPreloader",
    "ProgressiveLoadingController",
    "filter_records",
]
