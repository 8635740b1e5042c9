"""Progressive page rendering driven by the discovery loader."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from bs4 import BeautifulSoup

from . import dom
from .animations import AnimationTimingEngine
from .config import GalleryConfig
from .discovery import FormatAwareDiscoveryLoader
from .hotspots import HotspotGeometryEngine
from .images import Fetcher, decode_image_async, fetch_with_timeout
from .models import ImageCandidate, PageImage, PageRecord, RenderState
from .observability import EventSink, emit
from .state import GalleryState
from .sync import NavigationSynchronizer
from .viewport import Viewport, VisibilityHub

logger = logging.getLogger("pagefolio")

NO_CONTENT_MESSAGE = "No portfolio images were found."
PAGE_FAILED_MESSAGE = "Unable to load this page."


class RenderError(RuntimeError):
    """A discovered page could not be materialized into the document."""


class PageRenderPipeline:
    """Render the first page up front, then the rest in a background task.

    Pages render one at a time in discovery order. Each page moves through
    ``PENDING -> LOADING -> READY | FAILED``; a failed page gets a fallback
    tile and the loop moves on.
    """

    def __init__(
        self,
        config: GalleryConfig,
        state: GalleryState,
        soup: BeautifulSoup,
        loader: FormatAwareDiscoveryLoader,
        fetcher: Fetcher,
        viewport: Viewport,
        visibility: VisibilityHub,
        synchronizer: NavigationSynchronizer,
        indicator: dom.LoadingIndicator,
        hotspots: Optional[HotspotGeometryEngine] = None,
        animations: Optional[AnimationTimingEngine] = None,
        sink: Optional[EventSink] = None,
        on_rendered: Optional[Callable[[PageRecord], None]] = None,
    ) -> None:
        self.config = config
        self.state = state
        self.soup = soup
        self.loader = loader
        self.fetcher = fetcher
        self.viewport = viewport
        self.visibility = visibility
        self.synchronizer = synchronizer
        self.indicator = indicator
        self.hotspots = hotspots
        self.animations = animations
        self.sink = sink
        self.on_rendered = on_rendered
        self.container = dom.container(soup)
        self._background: Optional[asyncio.Task] = None

    async def initialize(self) -> Optional[PageRecord]:
        """Render the first page, hide the loader, start background loading."""
        emit(self.sink, "init", name="pipeline.initialize")
        if self.container is None:
            logger.warning("Portfolio container not found")
            self.finish()
            return None

        self.container.clear()
        self.state.hotspot_elements.clear()

        first = await self.loader.next()
        if first is None:
            self.indicator.hide("No portfolio pages found")
            self.show_gallery_fallback(NO_CONTENT_MESSAGE)
            self.loader.finalize()
            self.finish()
            return None

        start = time.perf_counter()
        record = await self.render_page(first)
        logger.debug(
            "First page rendered in %.2fms", (time.perf_counter() - start) * 1000
        )
        logger.info("Hiding global spinner, starting background page loading")
        self.indicator.hide()

        self._background = asyncio.create_task(self._run_background())
        return record

    async def _run_background(self) -> None:
        try:
            await self.load_remaining()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Error loading remaining portfolio pages")
        finally:
            self.finish()

    async def load_remaining(self) -> None:
        emit(self.sink, "init", name="pipeline.load_remaining")
        while True:
            candidate = await self.loader.next()
            if candidate is None:
                break
            logger.debug("Background loading page %d", candidate.page_number)
            await self.render_page(candidate)
        self.loader.finalize()

    def finish(self) -> None:
        """Mark discovery complete and release every outstanding waiter."""
        self.state.all_pages_loaded = True
        self.synchronizer.flush()

    async def wait_until_complete(self) -> None:
        if self._background is not None:
            await self._background

    @property
    def running(self) -> bool:
        return self._background is not None and not self._background.done()

    async def render_page(self, candidate: ImageCandidate) -> Optional[PageRecord]:
        """Render one page; a second request for the same page is a no-op."""
        page_number = candidate.page_number
        existing = self.state.records.get(page_number)
        if page_number in self.state.pages_in_flight or existing is not None:
            logger.warning("Page %d already rendered or in flight, skipping", page_number)
            return existing
        if self.container is None:
            logger.warning("Portfolio container not found, cannot render page %d", page_number)
            return None

        logger.info("Starting to render page %d", page_number)
        self.state.pages_in_flight.add(page_number)
        emit(self.sink, "render.started", page_number=page_number)
        record: Optional[PageRecord] = None
        try:
            slot = dom.create_page_slot(self.soup, page_number)
            slot.append(dom.create_skeleton(self.soup))
            self.container.append(slot)
            record = PageRecord(page_number=page_number, dom_handle=slot, candidate=candidate)
            self.state.records[page_number] = record
            if candidate not in self.state.loaded_images:
                self.state.loaded_images.append(candidate)
            self._observe(record)
            record.transition(RenderState.LOADING)

            try:
                image = await self.materialize(candidate)
            except Exception as exc:  # pylint: disable=broad-except
                self._fail(record, exc)
            else:
                self._complete(record, image)
                await self._attach_overlays(record)
        finally:
            self.state.pages_in_flight.discard(page_number)
            emit(
                self.sink,
                "render.finished",
                page_number=page_number,
                state=record.render_state.value if record is not None else "aborted",
            )

        self.synchronizer.page_ready(page_number, record)
        if record is not None and self.on_rendered is not None:
            self.on_rendered(record)
        return record

    async def materialize(self, candidate: ImageCandidate) -> PageImage:
        """Turn a candidate into an ``<img>``, re-fetching if it carries no payload."""
        payload = candidate.payload
        if payload is None:
            response = await fetch_with_timeout(
                self.fetcher, candidate.path, self.config.fetch_timeout
            )
            if not response.ok:
                raise RenderError(f"HTTP {response.status} for {candidate.path}")
            payload = await decode_image_async(response.content)

        width, height = getattr(payload, "size", (0, 0))
        if not width or not height:
            raise RenderError(f"Image for page {candidate.page_number} has no dimensions")

        element = dom.create_image(
            self.soup, candidate.path, f"Portfolio Page {candidate.page_number}"
        )
        element["width"] = str(width)
        element["height"] = str(height)
        return PageImage(element, width, height)

    def _complete(self, record: PageRecord, image: PageImage) -> None:
        slot = record.dom_handle
        dom.remove_class(slot, "loading")
        slot["aria-busy"] = "false"
        dom.replace_children(slot, dom.create_zoom_structure(self.soup, image.element))
        record.image = image
        record.rendered_height = self.viewport.rendered_image_size(
            image.natural_width, image.natural_height
        )[1]
        record.transition(RenderState.READY)
        self.state.update_max_loaded_page_number(record.page_number)

    def _fail(self, record: PageRecord, exc: BaseException) -> None:
        path = record.candidate.path if record.candidate else record.page_number
        logger.warning("Failed to load image: %s (%s)", path, exc)
        slot = record.dom_handle
        dom.remove_class(slot, "loading")
        dom.add_class(slot, "load-error")
        slot["aria-busy"] = "false"
        dom.replace_children(slot, dom.create_fallback(self.soup, PAGE_FAILED_MESSAGE))
        record.rendered_height = self.config.layout.fallback_page_height
        record.transition(RenderState.FAILED)
        if min(self.state.records) == record.page_number:
            self.show_gallery_fallback(PAGE_FAILED_MESSAGE)

    async def _attach_overlays(self, record: PageRecord) -> None:
        if self.hotspots is not None:
            try:
                self.hotspots.attach(record)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Error attaching hotspots to page %d", record.page_number)
        if self.animations is not None:
            try:
                await self.animations.attach(record)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning(
                    "Error attaching animations to page %d: %s", record.page_number, exc
                )

    def _observe(self, record: PageRecord) -> None:
        """Add the ``visible`` class the first time the page scrolls into view."""
        slot = record.dom_handle

        def _on_visibility(visible: bool) -> None:
            if visible:
                dom.add_class(slot, "visible")
                subscription.cancel()

        subscription = self.visibility.subscribe(record.page_number, _on_visibility)

    def show_gallery_fallback(self, message: str) -> None:
        if self.container is None:
            return
        if self.container.find("div", class_="gallery-fallback") is not None:
            return
        fallback = dom.create_fallback(self.soup, message)
        dom.add_class(fallback, "gallery-fallback")
        self.container.insert(0, fallback)
