"""Per-key de-duplication of concurrent async work."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Flight:
    task: "asyncio.Task[Any]"
    waiters: int = 0


class SingleFlight(Generic[T]):
    """Run at most one ``fn`` per key; concurrent callers share its outcome.

    The shared task is only cancelled once every caller awaiting it has been
    cancelled. Entries are dropped as soon as the task settles, so a failed
    flight is never replayed to later callers.
    """

    def __init__(self) -> None:
        self._flights: Dict[str, _Flight] = {}

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> Tuple[T, bool]:
        """Return ``(value, leader)`` where ``leader`` marks the caller that started the work."""
        flight = self._flights.get(key)
        leader = flight is None
        if flight is None:
            task = asyncio.ensure_future(fn())
            flight = _Flight(task=task)
            self._flights[key] = flight
            task.add_done_callback(lambda done, key=key, flight=flight: self._settle(key, flight))
        else:
            logger.debug("Joining in-flight work for %s", key)

        flight.waiters += 1
        try:
            value = await asyncio.shield(flight.task)
        except asyncio.CancelledError:
            if flight.waiters == 1 and not flight.task.done():
                logger.info("Last caller for %s left; cancelling shared work", key)
                # Late callers must start a fresh flight, not join the dying one.
                if self._flights.get(key) is flight:
                    del self._flights[key]
                flight.task.cancel()
            raise
        finally:
            flight.waiters -= 1
        return value, leader

    def in_flight(self, key: str) -> bool:
        return key in self._flights

    def __len__(self) -> int:
        return len(self._flights)

    def _settle(self, key: str, flight: _Flight) -> None:
        if self._flights.get(key) is flight:
            del self._flights[key]
        if not flight.task.cancelled():
            # Mark the exception retrieved even when every waiter has gone.
            flight.task.exception()


__all__ = ["SingleFlight"]
