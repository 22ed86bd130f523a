"""
One-second call timer on the asyncio event loop.

The tick is cooperative: it runs between other callbacks of the host loop, so the
session counter is only ever touched from one thread. Ticks are scheduled against
the loop's monotonic clock from the start time; when a blocking callback delays the
loop, the overdue ticks are delivered together on the next fire.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

TICK_INTERVAL_SECONDS: float = 1.0


class LoopTicker:
    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        self._loop = loop
        self._interval = interval
        self._handle: Optional[asyncio.TimerHandle] = None
        self._callback: Optional[Callable[[], None]] = None
        self._started_at = 0.0
        self._delivered = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self, callback: Callable[[], None]) -> None:
        self.stop()
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._callback = callback
        self._started_at = self._loop.time()
        self._delivered = 0
        self._schedule()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._callback = None

    def _schedule(self) -> None:
        assert self._loop is not None
        next_at = self._started_at + (self._delivered + 1) * self._interval
        self._handle = self._loop.call_at(next_at, self._fire)

    def _fire(self) -> None:
        assert self._loop is not None
        handle = self._handle
        due = int((self._loop.time() - self._started_at) / self._interval)
        while self._delivered < due:
            callback = self._callback
            if callback is None or self._handle is not handle:
                return
            self._delivered += 1
            callback()
        # A callback may have stopped or restarted the ticker.
        if self._callback is not None and self._handle is handle:
            self._schedule()


__all__ = ["LoopTicker", "TICK_INTERVAL_SECONDS"]
