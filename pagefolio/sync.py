"""One-shot completion registry and the page-ready synchronizer."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Callable, Dict, Generic, Hashable, List, Optional, TypeVar, TYPE_CHECKING

from .models import PageRecord

if TYPE_CHECKING:
    from .state import GalleryState

logger = logging.getLogger("pagefolio")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class CompletionRegistry(Generic[K, V]):
    """Keyed one-shot futures: any number of waiters per key, each resolved once."""

    def __init__(self) -> None:
        self._waiters: Dict[K, List[Callable[[V], None]]] = defaultdict(list)

    def register(self, key: K, waiter: Callable[[V], None]) -> None:
        self._waiters[key].append(waiter)

    def wait(self, key: K) -> "asyncio.Future[V]":
        future: asyncio.Future[V] = asyncio.get_running_loop().create_future()

        def _resolve(value: V) -> None:
            if not future.done():
                future.set_result(value)

        self.register(key, _resolve)
        future.add_done_callback(lambda _: self.unregister(key, _resolve))
        return future

    def unregister(self, key: K, waiter: Callable[[V], None]) -> None:
        waiters = self._waiters.get(key)
        if not waiters or waiter not in waiters:
            return
        waiters.remove(waiter)
        if not waiters:
            del self._waiters[key]

    def notify(self, key: K, value: V) -> int:
        waiters = self._waiters.pop(key, [])
        for waiter in waiters:
            waiter(value)
        return len(waiters)

    def notify_all(self, value: V) -> int:
        pending, self._waiters = self._waiters, defaultdict(list)
        count = 0
        for waiters in pending.values():
            for waiter in waiters:
                waiter(value)
                count += 1
        return count

    def pending_keys(self) -> List[K]:
        return [key for key, waiters in self._waiters.items() if waiters]

    def __len__(self) -> int:
        return sum(len(waiters) for waiters in self._waiters.values())


class NavigationSynchronizer:
    """Let navigation suspend until the pipeline has rendered page ``n``."""

    def __init__(self, state: "GalleryState") -> None:
        self.state = state

    async def wait_for_page(self, page_number: int) -> Optional[PageRecord]:
        record = self.state.records.get(page_number)
        if record is not None and record.settled:
            return record

        if self.state.all_pages_loaded:
            if page_number > self.state.max_loaded_page_number:
                logger.debug("Page %d is past the end of the gallery", page_number)
            return None

        return await self.state.page_waiters.wait(page_number)

    def page_ready(self, page_number: int, record: PageRecord) -> None:
        self.state.page_waiters.notify(page_number, record)

    def flush(self) -> None:
        resolved = self.state.page_waiters.notify_all(None)
        if resolved:
            logger.debug("Resolved %d outstanding page waiters with None", resolved)
