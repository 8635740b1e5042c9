from __future__ import annotations

import asyncio

import pytest
from bs4 import BeautifulSoup

from pagefolio.models import PageRecord, RenderState
from pagefolio.state import GalleryState
from pagefolio.sync import CompletionRegistry, NavigationSynchronizer


def _record(page_number: int, state: RenderState = RenderState.READY) -> PageRecord:
    soup = BeautifulSoup("", "html.parser")
    record = PageRecord(page_number=page_number, dom_handle=soup.new_tag("div"))
    record.transition(RenderState.LOADING)
    record.transition(state)
    return record


def test_registry_resolves_every_waiter_exactly_once():
    registry: CompletionRegistry[int, str] = CompletionRegistry()
    seen = []
    registry.register(3, seen.append)
    registry.register(3, seen.append)
    registry.register(4, seen.append)

    assert len(registry) == 3
    assert registry.notify(3, "three") == 2
    assert registry.notify(3, "again") == 0
    assert registry.pending_keys() == [4]
    assert registry.notify_all("done") == 1
    assert seen == ["three", "three", "done"]
    assert len(registry) == 0


def test_waiting_for_a_page_resolves_when_it_renders():
    async def _run() -> None:
        state = GalleryState()
        sync = NavigationSynchronizer(state)
        first = asyncio.ensure_future(sync.wait_for_page(2))
        second = asyncio.ensure_future(sync.wait_for_page(2))
        await asyncio.sleep(0)
        assert not first.done()

        record = _record(2)
        state.records[2] = record
        sync.page_ready(2, record)
        assert await first is record
        assert await second is record
        assert await sync.wait_for_page(2) is record

    asyncio.run(_run())


def test_failed_pages_still_resolve_waiters():
    async def _run() -> None:
        state = GalleryState()
        state.records[1] = _record(1, RenderState.FAILED)
        sync = NavigationSynchronizer(state)
        assert (await sync.wait_for_page(1)).render_state is RenderState.FAILED

    asyncio.run(_run())


def test_waiting_after_discovery_finished_returns_none():
    async def _run() -> None:
        state = GalleryState()
        state.records[1] = _record(1)
        state.update_max_loaded_page_number(1)
        state.all_pages_loaded = True
        sync = NavigationSynchronizer(state)

        assert await sync.wait_for_page(99) is None
        assert len(state.page_waiters) == 0

    asyncio.run(_run())


def test_flush_releases_outstanding_waiters_with_none():
    async def _run() -> None:
        state = GalleryState()
        sync = NavigationSynchronizer(state)
        pending = asyncio.ensure_future(sync.wait_for_page(5))
        await asyncio.sleep(0)

        state.all_pages_loaded = True
        sync.flush()
        assert await pending is None
        assert len(state.page_waiters) == 0

    asyncio.run(_run())


def test_cancelled_waiter_is_removed_from_the_registry():
    async def _run() -> None:
        state = GalleryState()
        sync = NavigationSynchronizer(state)
        abandoned = asyncio.ensure_future(sync.wait_for_page(7))
        kept = asyncio.ensure_future(sync.wait_for_page(7))
        await asyncio.sleep(0)
        assert len(state.page_waiters) == 2

        abandoned.cancel()
        with pytest.raises(asyncio.CancelledError):
            await abandoned
        await asyncio.sleep(0)
        assert len(state.page_waiters) == 1

        kept.cancel()
        with pytest.raises(asyncio.CancelledError):
            await kept
        await asyncio.sleep(0)
        assert len(state.page_waiters) == 0
        assert state.page_waiters.pending_keys() == []

    asyncio.run(_run())
