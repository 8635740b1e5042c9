"""Hotspot overlays: creation, positioning and the discovery hint."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from . import dom
from .config import HotspotSettings
from .geometry import (
    HotspotBox,
    ImageDimensions,
    border_perimeter,
    desktop_hotspot_box,
    mobile_hotspot_box,
)
from .models import HotspotConfig, PageRecord
from .scheduling import Scheduler
from .state import GalleryState
from .utils import format_number
from .viewport import Subscription, Viewport, VisibilityHub

logger = logging.getLogger("pagefolio")

HOTSPOT_CLASS = "youtube-hotspot"


@dataclass(eq=False)
class HotspotElement:
    """A hotspot overlay; holds a back-reference to its config, never the reverse."""

    hotspot_id: int
    element: Tag
    config: HotspotConfig
    record: PageRecord
    box: Optional[HotspotBox] = None
    awaiting_decode: bool = False

    @property
    def border(self) -> Optional[Tag]:
        return self.element.find("rect", class_="border-rect")


class HotspotGeometryEngine:
    def __init__(
        self,
        state: GalleryState,
        soup: BeautifulSoup,
        viewport: Viewport,
        settings: HotspotSettings,
        scheduler: Scheduler,
        visibility: VisibilityHub,
        on_activate: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.state = state
        self.soup = soup
        self.viewport = viewport
        self.settings = settings
        self.scheduler = scheduler
        self.visibility = visibility
        self.on_activate = on_activate
        self._ids = itertools.count(1)
        self._subscriptions: Dict[int, Subscription] = {}

    def create_element(self, config: HotspotConfig) -> Tag:
        rect = dom.create_element(
            self.soup,
            "rect",
            "border-rect",
            {"x": "1", "y": "1", "rx": "4", "ry": "4"},
        )
        svg = dom.create_element(
            self.soup,
            "svg",
            "hotspot-border",
            {"xmlns": "http://www.w3.org/2000/svg"},
            children=[rect],
        )
        return dom.create_element(
            self.soup,
            "div",
            HOTSPOT_CLASS,
            {
                "data-video-id": config.target_ref,
                "aria-label": "Watch Video",
                "tabindex": "0",
                "role": "button",
            },
            children=[svg],
        )

    def attach(
        self, record: PageRecord, configs: Optional[Sequence[HotspotConfig]] = None
    ) -> List[HotspotElement]:
        """Add one overlay per config to the page's image container."""
        if configs is None:
            configs = self.state.hotspot_configs_by_page.get(record.page_number, [])
        if not configs:
            return []

        target = record.dom_handle.find("div", class_=dom.ZOOM_IMAGE_CLASS)
        if target is None:
            logger.warning(
                ".zoomist-image not found for page %d, attaching hotspot to page",
                record.page_number,
            )
            target = record.dom_handle

        attached = []
        for config in configs:
            element = self.create_element(config)
            target.append(element)
            hotspot = HotspotElement(
                hotspot_id=next(self._ids),
                element=element,
                config=config,
                record=record,
            )
            self.state.hotspot_elements.append(hotspot)
            attached.append(hotspot)
            self.position(hotspot)

        self._watch_for_discovery(record)
        return attached

    def dimensions(self, record: PageRecord) -> Optional[ImageDimensions]:
        image = record.image
        if image is None or not image.decoded:
            return None
        image_width, image_height = self.viewport.rendered_image_size(
            image.natural_width, image.natural_height
        )
        if image_width <= 0 or image_height <= 0:
            return None
        return ImageDimensions(
            natural_width=image.natural_width,
            natural_height=image.natural_height,
            image_width=image_width,
            image_height=image_height,
        )

    def compute_box(
        self, config: HotspotConfig, dims: ImageDimensions
    ) -> HotspotBox:
        if self.viewport.is_mobile:
            return mobile_hotspot_box(
                config, dims, self.settings.min_touch_size, self.settings.min_touch_scale
            )
        return desktop_hotspot_box(config, dims)

    def position(self, hotspot: HotspotElement) -> Optional[HotspotBox]:
        """Place ``hotspot`` on its page; defers once until the image decodes."""
        image = hotspot.record.image
        if image is None:
            logger.warning("No image on page %d to position hotspot", hotspot.record.page_number)
            return None
        if not image.decoded:
            if not hotspot.awaiting_decode:
                hotspot.awaiting_decode = True
                image.when_decoded(lambda: self._after_decode(hotspot))
            return None

        dims = self.dimensions(hotspot.record)
        if dims is None:
            return None

        box = self.compute_box(hotspot.config, dims)
        dom.set_style(
            hotspot.element,
            {
                "left": f"{format_number(box.left)}%",
                "top": f"{format_number(box.top)}%",
                "width": f"{format_number(box.width)}%",
                "height": f"{format_number(box.height)}%",
            },
        )
        dom.remove_style(hotspot.element, "bottom")
        self._update_border(hotspot, box)
        hotspot.box = box
        return box

    def _after_decode(self, hotspot: HotspotElement) -> None:
        hotspot.awaiting_decode = False
        self.position(hotspot)

    def _update_border(self, hotspot: HotspotElement, box: HotspotBox) -> None:
        border = hotspot.border
        if border is None:
            return
        perimeter = format_number(border_perimeter(box.rendered_width, box.rendered_height))
        border["stroke-dasharray"] = perimeter
        border["stroke-dashoffset"] = perimeter

    def reposition(self, record: PageRecord) -> None:
        for hotspot in self.state.hotspot_elements:
            if hotspot.record is record:
                self.position(hotspot)

    def reposition_all(self) -> None:
        for hotspot in list(self.state.hotspot_elements):
            self.position(hotspot)

    def activate(self, hotspot: HotspotElement) -> None:
        if hotspot.config.target_ref and self.on_activate is not None:
            self.on_activate(hotspot.config.target_ref)

    def _watch_for_discovery(self, record: PageRecord) -> None:
        page_number = record.page_number
        if page_number in self._subscriptions:
            return

        def _on_visibility(visible: bool) -> None:
            if visible:
                self._start_discovery(page_number)

        self._subscriptions[page_number] = self.visibility.subscribe(
            page_number, _on_visibility
        )
        if self.visibility.is_visible(page_number):
            self._start_discovery(page_number)

    def _start_discovery(self, page_number: int) -> None:
        """Flash each not-yet-hinted hotspot on the page once."""
        for hotspot in self.state.hotspot_elements:
            if hotspot.record.page_number != page_number:
                continue
            if hotspot.hotspot_id in self.state.animated_hotspots:
                continue
            self.state.animated_hotspots.add(hotspot.hotspot_id)
            self.scheduler.call_later(
                self.settings.discovery_delay_ms, lambda h=hotspot: self._discover(h)
            )

    def _discover(self, hotspot: HotspotElement) -> None:
        dom.add_class(hotspot.element, "discover")
        self.scheduler.call_later(
            self.settings.discovery_duration_ms,
            lambda: dom.remove_class(hotspot.element, "discover"),
        )
