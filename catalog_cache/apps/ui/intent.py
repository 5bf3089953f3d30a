"""Preload detail records when the user hovers or focuses an item."""

from __future__ import annotations

import logging
from typing import Dict, Tuple

from catalog_cache.core.scheduling import DelayedTask
from catalog_cache.domain.catalog import CatalogKind
from catalog_cache.services.details import DetailLoader

logger = logging.getLogger(__name__)

DEFAULT_INTENT_DELAY_SECONDS = 0.3

_Target = Tuple[CatalogKind, str]


class IntentPreloader:
    """Debounced detail prefetch keyed by item.

    ``pointer_enter`` arms a timer; leaving the item before it elapses cancels
    it and nothing is fetched. A fired prefetch runs to completion and its
    result lands in the durable cache.
    """

    def __init__(self, loader: DetailLoader, *, delay_seconds: float = DEFAULT_INTENT_DELAY_SECONDS) -> None:
        self._loader = loader
        self._delay = delay_seconds
        self._pending: Dict[_Target, DelayedTask] = {}

    @property
    def pending_count(self) -> int:
        return sum(1 for task in self._pending.values() if not task.fired)

    def pointer_enter(self, kind: CatalogKind, item_id: str) -> DelayedTask:
        target = (kind, item_id)
        previous = self._pending.pop(target, None)
        if previous is not None:
            previous.cancel()

        async def _fire() -> None:
            try:
                await self._loader.prefetch(kind, item_id)
            finally:
                if self._pending.get(target) is task:
                    del self._pending[target]

        task = DelayedTask(self._delay, _fire, name=f"intent_preload:{kind.value}:{item_id}")
        self._pending[target] = task
        return task

    def pointer_leave(self, kind: CatalogKind, item_id: str) -> bool:
        """Cancel a pending prefetch. Returns True if one was cancelled."""

        task = self._pending.get((kind, item_id))
        if task is None or not task.cancel():
            return False
        del self._pending[(kind, item_id)]
        logger.debug("Intent preload cancelled for %s %s", kind.value, item_id)
        return True

    focus = pointer_enter
    blur = pointer_leave

    def cancel_all(self) -> int:
        cancelled = 0
        for target, task in list(self._pending.items()):
            if task.cancel():
                cancelled += 1
                del self._pending[target]
        return cancelled


__all__ = ["DEFAULT_INTENT_DELAY_SECONDS", "IntentPreloader"]
