"""High-level orchestration of discovery, rendering and overlays."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from . import dom
from .animations import AnimationTimingEngine, IconLibrary
from .config import GalleryConfig
from .discovery import FormatAwareDiscoveryLoader
from .hotspots import HotspotGeometryEngine
from .images import Fetcher, build_fetcher
from .models import PageRecord, RenderState
from .navigation import NavigationResult, Navigator
from .observability import EventSink
from .parsing import (
    group_by_page,
    load_config_text,
    parse_animation_config,
    parse_hotspot_config,
    summarize,
)
from .renderer import PageRenderPipeline
from .scheduling import AsyncioScheduler, Debouncer, Scheduler
from .state import GalleryState
from .sync import NavigationSynchronizer
from .utils import join_location
from .viewport import Viewport, VisibilityHub

logger = logging.getLogger("pagefolio")

DEFAULT_VIEWPORT = (1280, 800)


@dataclass
class GalleryReport:
    """Outcome of a full discovery and render pass."""

    page_count: int
    failed_pages: List[int]
    formats: Dict[int, str]
    total_seconds: float
    no_content: bool = False
    hotspot_count: int = 0
    animation_count: int = 0
    probed_pages: List[int] = field(default_factory=list)


class Gallery:
    """Owns the shared state and wires every component to it."""

    def __init__(
        self,
        config: GalleryConfig,
        fetcher: Optional[Fetcher] = None,
        viewport: Optional[Viewport] = None,
        scheduler: Optional[Scheduler] = None,
        sink: Optional[EventSink] = None,
        on_activate: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher or build_fetcher(config.base)
        self.scheduler = scheduler or AsyncioScheduler()
        self.viewport = viewport or Viewport(*DEFAULT_VIEWPORT, layout=config.layout)
        self.sink = sink
        self.state = GalleryState()
        self.soup = dom.new_document()
        self.visibility = VisibilityHub()
        self.indicator = dom.LoadingIndicator(self.soup)

        self.hotspots = HotspotGeometryEngine(
            self.state,
            self.soup,
            self.viewport,
            config.hotspots,
            self.scheduler,
            self.visibility,
            on_activate=on_activate,
        )
        self.animations = AnimationTimingEngine(
            self.state,
            self.soup,
            config.animations,
            self.scheduler,
            self.visibility,
            IconLibrary(config, self.fetcher, self.soup),
            sink=sink,
        )
        self.loader = FormatAwareDiscoveryLoader(config, self.fetcher, sink=sink)
        self.synchronizer = NavigationSynchronizer(self.state)
        self.pipeline = PageRenderPipeline(
            config,
            self.state,
            self.soup,
            self.loader,
            self.fetcher,
            self.viewport,
            self.visibility,
            self.synchronizer,
            self.indicator,
            hotspots=self.hotspots,
            animations=self.animations,
            sink=sink,
            on_rendered=self._on_page_rendered,
        )
        self.navigator = Navigator(
            config, self.state, self.synchronizer, self.indicator, self.scroll_to_page
        )
        self._relayout_debouncer = Debouncer(
            self.scheduler, config.performance.resize_debounce_ms, self.relayout
        )
        self._started_at: Optional[float] = None

    async def load_configs(self) -> None:
        """Load hotspot and animation files concurrently; failures leave them empty."""
        timeout = self.config.fetch_timeout
        hotspot_text, animation_text = await asyncio.gather(
            load_config_text(
                self.fetcher,
                join_location(self.config.base, self.config.hotspot_file),
                timeout,
                "hotspots",
            ),
            load_config_text(
                self.fetcher,
                join_location(self.config.base, self.config.animation_file),
                timeout,
                "animations",
            ),
            return_exceptions=True,
        )
        if isinstance(hotspot_text, BaseException):
            logger.warning(
                "Hotspot configs failed to load, continuing without hotspots: %s", hotspot_text
            )
            hotspot_text = None
        if isinstance(animation_text, BaseException):
            logger.warning(
                "Animation configs failed to load, continuing with no animations: %s",
                animation_text,
            )
            animation_text = None

        self.apply_hotspot_text(hotspot_text or "")
        self.apply_animation_text(animation_text or "")

    def apply_hotspot_text(self, text: str) -> None:
        configs = parse_hotspot_config(text)
        self.state.hotspot_configs = configs
        self.state.hotspot_configs_by_page = group_by_page(configs)
        if text:
            summarize(configs, "hotspot")

    def apply_animation_text(self, text: str) -> None:
        configs = parse_animation_config(text)
        self.state.animation_configs_by_page = group_by_page(configs)
        if text:
            summarize(configs, "animation")

    async def start(self, load_configs: bool = True) -> Optional[PageRecord]:
        """Render the first page; the rest continue loading in the background."""
        self._started_at = time.perf_counter()
        self.indicator.show()
        try:
            if load_configs:
                await self.load_configs()
            return await self.pipeline.initialize()
        finally:
            self.indicator.hide()

    async def wait_until_loaded(self) -> None:
        await self.pipeline.wait_until_complete()

    async def run(self, load_configs: bool = True) -> GalleryReport:
        await self.start(load_configs=load_configs)
        await self.wait_until_loaded()
        return self.report()

    def report(self) -> GalleryReport:
        records = self.state.rendered_pages()
        elapsed = time.perf_counter() - self._started_at if self._started_at else 0.0
        return GalleryReport(
            page_count=len(records),
            failed_pages=[r.page_number for r in records if r.render_state is RenderState.FAILED],
            formats={
                r.page_number: r.candidate.format for r in records if r.candidate is not None
            },
            total_seconds=elapsed,
            no_content=self.loader.no_content,
            hotspot_count=len(self.state.hotspot_elements),
            animation_count=sum(len(items) for items in self.state.page_animations.values()),
            probed_pages=list(self.loader.probed_pages),
        )

    def page_offsets(self) -> Dict[int, float]:
        """Top offset of every page slot, stacked in page order."""
        offsets: Dict[int, float] = {}
        top = 0.0
        for record in self.state.rendered_pages():
            offsets[record.page_number] = top
            top += record.rendered_height
        return offsets

    def refresh_visibility(self) -> None:
        offsets = self.page_offsets()
        visible = [
            record.page_number
            for record in self.state.rendered_pages()
            if self.viewport.is_span_visible(offsets[record.page_number], record.rendered_height)
        ]
        self.visibility.update(visible, offsets.keys())

    def _on_page_rendered(self, record: PageRecord) -> None:
        self.refresh_visibility()

    def scroll_to(self, scroll_y: float) -> None:
        self.viewport.scroll_y = max(0.0, scroll_y)
        self.refresh_visibility()

    def scroll_to_page(self, record: PageRecord) -> None:
        offset = self.page_offsets().get(record.page_number)
        if offset is None:
            logger.warning("Page %d has no layout position", record.page_number)
            return
        self.scroll_to(offset)

    def relayout(self) -> None:
        """Recompute rendered page heights, hotspot boxes and visibility."""
        for record in self.state.rendered_pages():
            if record.image is not None and record.image.decoded:
                record.rendered_height = self.viewport.rendered_image_size(
                    record.image.natural_width, record.image.natural_height
                )[1]
        self.hotspots.reposition_all()
        self.refresh_visibility()

    def resize(self, width: float, height: float) -> None:
        self.viewport.resize(width, height)
        self._relayout_debouncer()

    def orientation_changed(self, width: float, height: float) -> None:
        self.viewport.resize(width, height)
        self.scheduler.call_later(
            self.config.performance.orientation_change_delay_ms, self.relayout
        )

    def pointer_enter(self, page_number: int) -> int:
        return self.animations.pointer_enter(page_number)

    async def navigate(self, page_number: int) -> Optional[NavigationResult]:
        return await self.navigator.navigate_to_page(page_number)

    async def navigate_to_hash(self, fragment: str) -> Optional[NavigationResult]:
        return await self.navigator.navigate_to_hash(fragment)

    def hide_page_animation(self, page_number: int, class_name: str) -> int:
        return self.animations.hide_page_animation(page_number, class_name)

    def to_html(self) -> str:
        return self.soup.decode(formatter="minimal")
