from __future__ import annotations

import asyncio
import itertools
from io import BytesIO
from typing import Callable, Dict, List, Optional, Union

import pytest
from PIL import Image

from pagefolio.config import GalleryConfig
from pagefolio.images import FetchResponse
from pagefolio.utils import asset_location, join_location

BASE = "site"
HANG = object()

Response = Union[bytes, str, FetchResponse, BaseException, object]


class _Timer:
    def __init__(self, when: float, seq: int, callback: Callable[[], object]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """Scheduler whose time only moves when a test calls :meth:`advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: List[_Timer] = []
        self._seq = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], object]) -> _Timer:
        timer = _Timer(self.now + max(0.0, delay_ms), next(self._seq), callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)

    def advance(self, ms: float) -> None:
        target = self.now + ms
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self._timers = [t for t in self._timers if not t.cancelled]
        self.now = target


class FakeFetcher:
    """In-memory fetcher; unknown locations answer 404."""

    def __init__(self, responses: Optional[Dict[str, Response]] = None) -> None:
        self.responses: Dict[str, Response] = dict(responses or {})
        self.requests: List[str] = []

    def add(self, location: str, value: Response) -> None:
        self.responses[location] = value

    async def fetch(self, location: str, timeout: float) -> FetchResponse:
        self.requests.append(location)
        value = self.responses.get(location)
        if value is None:
            return FetchResponse(location=location, status=404, reason="Not Found")
        if value is HANG:
            await asyncio.Event().wait()
        if isinstance(value, BaseException):
            raise value
        if isinstance(value, FetchResponse):
            return value
        if isinstance(value, str):
            value = value.encode("utf-8")
        return FetchResponse(location=location, status=200, content=value, reason="OK")


def make_png(width: int = 100, height: int = 50) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def make_config(**overrides) -> GalleryConfig:
    overrides.setdefault("base", BASE)
    return GalleryConfig(**overrides)


def add_pages(
    fetcher: FakeFetcher,
    config: GalleryConfig,
    pages,
    fmt: str = "png",
    size=(100, 50),
) -> None:
    data = make_png(*size)
    for page_number in pages:
        fetcher.add(asset_location(config, page_number, fmt), data)


def config_location(config: GalleryConfig, relative: str) -> str:
    return join_location(config.base, relative)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def config() -> GalleryConfig:
    return make_config()
