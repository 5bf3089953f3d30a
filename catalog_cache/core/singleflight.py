"""Single-flight cell for deduplicating concurrent loads.

A cell is always in exactly one of four states:

- ``Idle``: nothing loaded and nothing running
- ``InFlight``: a loader task is running and callers attach to its future
- ``Ready``: the loader succeeded and the value is served without I/O
- ``Failed``: the last loader raised and the next call starts a fresh attempt

Every transition happens inside ``SingleFlight``. ``reset()`` bumps the
generation, so a loader started before the reset can still finish (its
awaiting callers get the result) but it can no longer write the cell.

Example:
    flight = SingleFlight("essential")
    first = flight.run(load)   # starts the task
    second = flight.run(load)  # attaches to the same task
    assert await first == await second
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable, Generic, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Idle:
    """Nothing loaded yet (or explicitly reset)."""


@dataclass(frozen=True, slots=True)
class InFlight(Generic[T]):
    """A loader is running; ``future`` resolves for every attached caller."""

    future: "asyncio.Future[T]"
    generation: int


@dataclass(frozen=True, slots=True)
class Ready(Generic[T]):
    """Loaded value plus the clock reading at which it was stored."""

    value: T
    loaded_at: float


@dataclass(frozen=True, slots=True)
class Failed:
    """Last attempt raised ``error``; the next ``run`` retries."""

    error: BaseException


FlightState = Union[Idle, InFlight[T], Ready[T], Failed]


def _consume_exception(future: "asyncio.Future[object]") -> None:
    # Callers that await still see the error; dropped futures stay quiet
    if not future.cancelled():
        future.exception()


def _shared(future: "asyncio.Future[T]") -> "asyncio.Future[T]":
    shielded = asyncio.shield(future)
    shielded.add_done_callback(_consume_exception)
    return shielded


class SingleFlight(Generic[T]):
    """Share one in-flight load (and its outcome) between concurrent callers."""

    def __init__(
        self,
        name: str,
        *,
        ttl: Optional[timedelta] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._ttl_seconds = ttl.total_seconds() if ttl else None
        self._clock = clock
        self._state: FlightState = Idle()
        self._generation = 0
        self.loads_started = 0

    @property
    def state(self) -> FlightState:
        self._expire_if_stale()
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def is_ready(self) -> bool:
        return isinstance(self.state, Ready)

    def is_in_flight(self) -> bool:
        return isinstance(self.state, InFlight)

    def value(self) -> Optional[T]:
        state = self.state
        if isinstance(state, Ready):
            return state.value
        return None

    def run(self, loader: Callable[[], Awaitable[T]]) -> "asyncio.Future[T]":
        """Return a future for the cell's value, starting ``loader`` only if needed.

        Callers invoking it back-to-back without awaiting in between share a
        single task.
        """

        loop = asyncio.get_running_loop()
        state = self.state

        if isinstance(state, Ready):
            done: asyncio.Future[T] = loop.create_future()
            done.set_result(state.value)
            return done

        if isinstance(state, InFlight):
            return _shared(state.future)

        self._generation += 1
        generation = self._generation
        task = loop.create_task(
            self._execute(loader, generation),
            name=f"singleflight:{self.name}:{generation}",
        )
        task.add_done_callback(_consume_exception)
        self._state = InFlight(task, generation)
        self.loads_started += 1
        logger.debug("Started load %s (generation %d)", self.name, generation)
        return _shared(task)

    async def get(self, loader: Callable[[], Awaitable[T]]) -> T:
        return await self.run(loader)

    def reset(self) -> None:
        """Drop any value and detach from a running loader."""

        self._generation += 1
        self._state = Idle()

    async def _execute(self, loader: Callable[[], Awaitable[T]], generation: int) -> T:
        try:
            value = await loader()
        except asyncio.CancelledError:
            if generation == self._generation:
                self._state = Idle()
            raise
        except Exception as exc:
            if generation == self._generation:
                self._state = Failed(exc)
            logger.warning("Load %s failed: %s", self.name, exc)
            raise

        if generation == self._generation:
            self._state = Ready(value, self._clock())
        else:
            logger.debug(
                "Discarding result of %s generation %d (current %d)",
                self.name,
                generation,
                self._generation,
            )
        return value

    def _expire_if_stale(self) -> None:
        if self._ttl_seconds is None:
            return
        state = self._state
        if isinstance(state, Ready) and self._clock() - state.loaded_at > self._ttl_seconds:
            logger.info("Cached %s expired after %.0fs", self.name, self._ttl_seconds)
            self._state = Idle()


__all__ = [
    "Failed",
    "FlightState",
    "Idle",
    "InFlight",
    "Ready",
    "SingleFlight",
]
