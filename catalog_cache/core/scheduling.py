"""Cancellable delayed tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class DelayedTask:
    """Run ``callback`` after ``delay`` seconds unless cancelled first.

    The schedule handle is the underlying asyncio task; ``cancel()`` only has
    an effect while the delay is still running. Once the callback has started
    it is allowed to finish.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: Optional[str] = None,
    ) -> None:
        self.delay = max(0.0, float(delay))
        self._callback = callback
        self._fired = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=name)

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        self._fired = True
        try:
            await self._callback()
        except Exception:
            logger.exception("Delayed task %s failed", self._task.get_name())

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> bool:
        """Cancel before the delay elapses. Returns False if already fired."""

        if self._fired or self._task.done():
            return False
        self._task.cancel()
        return True

    async def wait(self) -> None:
        """Wait until the task fired and finished, or was cancelled."""

        await asyncio.wait({self._task})


__all__ = ["DelayedTask"]
