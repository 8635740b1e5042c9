"""Timer scheduling on the event loop, plus a trailing-edge debouncer."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: float, callback: Callable[[], Any]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedule callbacks on the running asyncio loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_ms: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay_ms) / 1000, callback)


class Debouncer:
    """Coalesce bursts of calls into one call ``wait_ms`` after the last."""

    def __init__(
        self, scheduler: Scheduler, wait_ms: float, func: Callable[[], Any]
    ) -> None:
        self.scheduler = scheduler
        self.wait_ms = wait_ms
        self.func = func
        self._pending: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def __call__(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self.scheduler.call_later(self.wait_ms, self._fire)

    def _fire(self) -> None:
        self._pending = None
        self.func()

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
