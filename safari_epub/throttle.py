"""Bounded-concurrency scheduler for coroutine work items.

At most ``max_concurrent`` items run at once.  Excess items wait in a FIFO
queue and are admitted one per completed item, in submission order, no
matter which running item freed the slot.  A failing item only fails its
own caller: siblings keep running and queued items are still admitted.

Usage::

    throttle = Throttle(3)
    results = await throttle.map([lambda: fetch(u) for u in urls])
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from typing import Any


class ThrottleConfigError(TypeError):
    pass


class Throttle:
    """Admit/release state machine over ``current`` and a FIFO of waiters.

    ``current`` counts admitted items and never exceeds ``max_concurrent``.
    A slot freed while waiters exist is handed straight to the oldest waiter,
    so ``current`` stays constant across that hand-over.
    """

    def __init__(self, max_concurrent: int):
        if isinstance(max_concurrent, bool) or not isinstance(max_concurrent, int):
            raise ThrottleConfigError(
                f"Throttle expects an int ceiling, got {type(max_concurrent).__name__}"
            )
        if max_concurrent < 1:
            raise ThrottleConfigError(f"Throttle ceiling must be >= 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self.current = 0
        self._queue: deque[asyncio.Future] = deque()

    @property
    def pending(self) -> int:
        """Number of items waiting for a slot."""
        return len(self._queue)

    async def _admit(self) -> None:
        if self.current < self.max_concurrent and not self._queue:
            self.current += 1
            return
        waiter = asyncio.get_running_loop().create_future()
        self._queue.append(waiter)
        # _release() has already counted this item in ``current``
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                self._release()
            raise

    def _release(self) -> None:
        self.current -= 1
        while self._queue:
            waiter = self._queue.popleft()
            if waiter.done():
                continue
            self.current += 1
            waiter.set_result(None)
            break

    async def __call__(self, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``fn()`` once a slot is free and return its result."""
        await self._admit()
        try:
            return await fn()
        finally:
            self._release()

    async def map(self, fns: Iterable[Callable[[], Awaitable[Any]]], return_exceptions: bool = False) -> list:
        """Run every item under the throttle; results follow submission order."""
        return await asyncio.gather(*(self(fn) for fn in fns), return_exceptions=return_exceptions)
