"""
RequestCoalescer — single-flight execution of keyed coroutines.

This is a pure asyncio concurrency primitive with no network dependencies.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Hashable

from .models import CoroFactory

_LOGGER = logging.getLogger(__name__)


class RequestCoalescer:
    """
    Runs at most one coroutine per key at a time.

    Callers asking for a key that is already in flight await the running
    job's result instead of starting a duplicate.  Cancelling one waiter
    does not cancel the shared job.
    """

    def __init__(self) -> None:
        # key → Task currently running for that key
        self._in_flight: dict[Hashable, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def is_in_flight(self, key: Hashable) -> bool:
        task = self._in_flight.get(key)
        return task is not None and not task.done()

    async def run(self, key: Hashable, coro_factory: CoroFactory) -> Any:
        """Await coro_factory() for key, joining an in-flight run if one exists."""
        task = self._in_flight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(coro_factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._discard(k, t))
        else:
            _LOGGER.debug("Joining in-flight request for %s", key)
        return await asyncio.shield(task)

    async def shutdown(self) -> None:
        """Cancel every in-flight job."""
        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                _LOGGER.debug("RequestCoalescer job error during shutdown: %s", result)
        self._in_flight.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _discard(self, key: Hashable, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
