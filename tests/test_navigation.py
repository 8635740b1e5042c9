from __future__ import annotations

import asyncio

import pytest

from conftest import FakeFetcher, ManualClock, add_pages, make_config
from pagefolio.gallery import Gallery
from pagefolio.navigation import parse_page_hash
from pagefolio.viewport import Viewport


def _gallery(pages, size=(200, 1000)) -> Gallery:
    config = make_config()
    fetcher = FakeFetcher()
    add_pages(fetcher, config, pages, size=size)
    viewport = Viewport(1280, 800, layout=config.layout)
    return Gallery(config, fetcher=fetcher, viewport=viewport, scheduler=ManualClock())


@pytest.mark.parametrize(
    "fragment, expected",
    [("#page-7", 7), ("#PAGE-12", 12), ("#page-0", None), ("#page-x", None), ("", None)],
)
def test_parse_page_hash(fragment, expected):
    assert parse_page_hash(fragment) == expected


def test_navigating_to_a_rendered_page_scrolls_to_it():
    async def _run() -> None:
        gallery = _gallery([1, 2, 3])
        await gallery.run()

        result = await gallery.navigate(3)

        assert result.found
        assert gallery.viewport.scroll_y == 2000
        assert gallery.visibility.is_visible(3)
        assert not gallery.visibility.is_visible(1)

    asyncio.run(_run())


def test_navigation_waits_for_a_page_still_loading():
    async def _run() -> None:
        gallery = _gallery([1, 2, 3])
        await gallery.start()
        assert 3 not in gallery.state.records

        result = await gallery.navigate_to_hash("#page-3")

        assert result.found
        assert result.record is gallery.state.records[3]
        assert gallery.indicator.message == "Loading page 03…"
        assert not gallery.indicator.visible
        await gallery.wait_until_loaded()

    asyncio.run(_run())


def test_navigation_past_the_end_reports_not_found():
    async def _run() -> None:
        gallery = _gallery([1, 2])
        await gallery.start()

        result = await gallery.navigate(99)

        assert result.not_found
        assert not result.found
        assert gallery.indicator.message == "Page 99 not found"
        assert not gallery.indicator.visible
        assert len(gallery.state.page_waiters) == 0

    asyncio.run(_run())


def test_navigation_to_a_gap_page_reports_not_found():
    async def _run() -> None:
        gallery = _gallery([1, 2, 4])
        await gallery.run()

        result = await gallery.navigate(3)

        assert result.not_found
        assert gallery.viewport.scroll_y == 0

    asyncio.run(_run())


def test_invalid_page_numbers_are_ignored():
    async def _run() -> None:
        gallery = _gallery([1])
        await gallery.run()
        assert await gallery.navigate(0) is None
        assert await gallery.navigate_to_hash("#top") is None
        assert not gallery.indicator.visible

    asyncio.run(_run())
