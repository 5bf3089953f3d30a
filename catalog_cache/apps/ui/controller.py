"""Two-phase progressive loading for one UI surface.

Phase A paints as fast as possible:

1. aggregator already warm -> merge its popular/top lists for the kind
2. durable cache holds the full list -> show it
3. otherwise fetch the full list directly, with a loading indicator

Phase B starts at the same time and waits for the aggregator's full tier.
When it lands, the displayed list is merged (never cleared) with the richer
records. A Phase A failure is a blocking, retryable error; a Phase B failure
is only logged and whatever Phase A showed stays on screen.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from catalog_cache.apps.ui.filters import filter_records
from catalog_cache.cache.keys import CacheKeys
from catalog_cache.cache.persistent import PersistentCache
from catalog_cache.domain.catalog import (
    CatalogKind,
    EssentialKind,
    Record,
    dedupe_by_identity,
    merge_enriched,
)
from catalog_cache.services.aggregator import CatalogAggregator
from catalog_cache.services.remote import CatalogSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControllerSnapshot:
    """What the UI should render right now."""

    items: List[Record]
    filtered: List[Record]
    search_term: str
    loading: bool
    enriching: bool
    enriched: bool
    error: Optional[str]
    origin: str  # none, essential, durable, remote, full


Listener = Callable[[ControllerSnapshot], None]


class ProgressiveLoadingController:
    def __init__(
        self,
        aggregator: CatalogAggregator,
        source: CatalogSource,
        kind: CatalogKind,
        *,
        cache: Optional[PersistentCache] = None,
        search_fields: Optional[Sequence[str]] = None,
        search_term: str = "",
    ) -> None:
        self._aggregator = aggregator
        self._source = source
        self._kind = kind
        self._cache = cache
        self._search_fields = tuple(search_fields or kind.search_fields)
        self._search_term = search_term

        self._items: List[Record] = []
        self._filtered: List[Record] = []
        self._loading = False
        self._enriching = False
        self._enriched = False
        self._error: Optional[str] = None
        self._origin = "none"

        self._listeners: List[Listener] = []
        self._paint_generation = 0
        self._enrichment: Optional[asyncio.Task[None]] = None
        self._closed = False

    # Read-only view ------------------------------------------------------

    @property
    def kind(self) -> CatalogKind:
        return self._kind

    @property
    def items(self) -> List[Record]:
        return list(self._items)

    @property
    def filtered(self) -> List[Record]:
        return list(self._filtered)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def enriching(self) -> bool:
        return self._enriching

    @property
    def enriched(self) -> bool:
        return self._enriched

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def search_term(self) -> str:
        return self._search_term

    def snapshot(self) -> ControllerSnapshot:
        return ControllerSnapshot(
            items=list(self._items),
            filtered=list(self._filtered),
            search_term=self._search_term,
            loading=self._loading,
            enriching=self._enriching,
            enriched=self._enriched,
            error=self._error,
            origin=self._origin,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for every state change; returns an unsubscribe."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # Local filter --------------------------------------------------------

    def set_search_term(self, term: str) -> List[Record]:
        """Update the filter term; never triggers I/O."""

        self._search_term = term or ""
        self._recompute()
        self._notify()
        return self.filtered

    def _recompute(self) -> None:
        self._filtered = filter_records(self._items, self._search_term, self._search_fields)

    # Loading -------------------------------------------------------------

    async def start(self) -> None:
        """Run Phase A and start Phase B in the background."""

        if self._closed:
            raise RuntimeError("controller is closed")
        self._paint_generation += 1
        generation = self._paint_generation
        self._error = None
        self._start_enrichment()
        await self._paint(generation)

    async def retry(self) -> None:
        await self.start()

    refetch = retry

    async def _paint(self, generation: int) -> None:
        if self._aggregator.is_data_loaded():
            popular_kind, top_kind = EssentialKind.for_catalog(self._kind)
            popular = await self._aggregator.get_essential(popular_kind)
            top = await self._aggregator.get_essential(top_kind)
            try:
                records = dedupe_by_identity(self._kind, popular, top)
            except KeyError as exc:
                if generation != self._paint_generation or self._closed:
                    return
                logger.error("Malformed essential %s record, missing %s", self._kind.value, exc)
                self._error = f"Failed to load {self._kind.value}"
                self._notify()
                return
            self._present(generation, records, origin="essential")
            return

        if self._cache is not None:
            cached = await self._cache.get(CacheKeys.full(self._kind))
            if isinstance(cached, list):
                self._present(generation, cached, origin="durable")
                return

        self._loading = True
        self._notify()
        try:
            records = await self._source.fetch_full(self._kind)
        except Exception as exc:
            if generation != self._paint_generation or self._closed:
                return
            self._loading = False
            if self._enriched:
                logger.warning("Direct %s load failed after enrichment: %s", self._kind.value, exc)
            else:
                logger.error("Failed to load %s: %s", self._kind.value, exc)
                self._error = f"Failed to load {self._kind.value}"
            self._notify()
            return

        self._loading = False
        self._present(generation, records, origin="remote")

    def _present(self, generation: int, records: List[Record], *, origin: str) -> None:
        if generation != self._paint_generation or self._closed:
            return
        if self._enriched:
            # full data is already displayed
            self._notify()
            return
        self._items = list(records)
        self._origin = origin
        self._recompute()
        self._notify()

    def _start_enrichment(self) -> None:
        if self._enrichment is not None and not self._enrichment.done():
            return
        self._enriching = True
        self._enrichment = asyncio.create_task(
            self._enrich(),
            name=f"catalog_enrich:{self._kind.value}",
        )

    async def _enrich(self) -> None:
        try:
            full = await self._aggregator.get_all(self._kind)
            if self._closed:
                return
            items = merge_enriched(self._kind, self._items, full)
        except Exception as exc:
            logger.warning("Background enrichment of %s failed: %s", self._kind.value, exc)
            if not self._closed:
                self._enriching = False
                self._notify()
            return

        self._items = items
        self._origin = "full"
        self._enriched = True
        self._enriching = False
        self._loading = False
        self._error = None
        self._recompute()
        self._notify()

    async def wait_for_enrichment(self) -> None:
        if self._enrichment is not None:
            await asyncio.wait({self._enrichment})

    async def close(self) -> None:
        """Detach from background work; shared aggregator loads keep running."""

        self._closed = True
        self._listeners.clear()
        task = self._enrichment
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Controller listener failed")


__all__ = ["ControllerSnapshot", "Listener", "ProgressiveLoadingController"]
