"""Decorative page animations and their entrance/pulse/exit timeline."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from . import dom
from .config import AnimationSettings, GalleryConfig
from .geometry import animation_box
from .images import FetchError, Fetcher, load_text
from .models import AnimationConfig, PageRecord, TriggerType
from .observability import EventSink, emit
from .scheduling import Scheduler, TimerHandle
from .state import GalleryState
from .utils import format_number, icon_class_name, icon_stem, join_location
from .viewport import Subscription, VisibilityHub

logger = logging.getLogger("pagefolio")

HIDDEN_CLASS = "animation-hidden"
HIDDEN_PERMANENT_CLASS = "animation-hidden-permanent"


class AnimationPhase(enum.Enum):
    CREATED = "created"
    DELAYED = "delayed"
    VISIBLE = "visible"
    PULSING = "pulsing"
    EXITING = "exiting"
    REMOVED = "removed"
    HIDING = "hiding"
    HIDDEN_PERMANENT = "hidden-permanent"


_HIDEABLE = {
    AnimationPhase.CREATED,
    AnimationPhase.DELAYED,
    AnimationPhase.VISIBLE,
    AnimationPhase.PULSING,
    AnimationPhase.EXITING,
}


@dataclass(eq=False)
class AnimationInstance:
    element: Tag
    config: AnimationConfig
    page_number: int
    class_name: Optional[str] = None
    phase: AnimationPhase = AnimationPhase.CREATED
    history: List[AnimationPhase] = field(default_factory=list)
    timers: List[TimerHandle] = field(default_factory=list)

    @property
    def trigger_type(self) -> TriggerType:
        return self.config.trigger_type

    def set_phase(self, phase: AnimationPhase) -> None:
        logger.debug(
            "Animation %s on page %d: %s -> %s",
            self.class_name,
            self.page_number,
            self.phase.value,
            phase.value,
        )
        self.phase = phase
        self.history.append(phase)

    def cancel_timers(self) -> None:
        for timer in self.timers:
            timer.cancel()
        self.timers.clear()


def svg_aspect_ratio(svg: Tag) -> Optional[float]:
    """Width/height ratio from an SVG ``viewBox``, or None when unusable."""
    view_box = svg.get("viewBox") or svg.get("viewbox")
    if not view_box:
        logger.warning("SVG element missing viewBox attribute")
        return None
    parts = view_box.replace(",", " ").split()
    if len(parts) < 4:
        logger.warning("Invalid viewBox format: %s", view_box)
        return None
    try:
        width, height = float(parts[2]), float(parts[3])
    except ValueError:
        logger.warning("Invalid viewBox format: %s", view_box)
        return None
    if width <= 0 or height <= 0:
        logger.warning("Invalid viewBox dimensions: %s x %s", width, height)
        return None
    return width / height


class IconLibrary:
    """Fetches SVG icons and their optional companion stylesheets."""

    def __init__(self, config: GalleryConfig, fetcher: Fetcher, soup: BeautifulSoup) -> None:
        self.config = config
        self.fetcher = fetcher
        self.soup = soup
        self._svg_text: Dict[str, Optional[str]] = {}
        self._stylesheets: Dict[str, bool] = {}

    def location(self, filename: str) -> str:
        return join_location(self.config.base, self.config.icons_folder, filename)

    async def _fetch_text(self, location: str) -> Optional[str]:
        try:
            return await load_text(self.fetcher, location, self.config.fetch_timeout)
        except FetchError as exc:
            logger.warning("Error loading %s: %s", location, exc)
            return None

    async def load_icon(self, icon_file: str) -> Optional[Tag]:
        """Return a fresh ``<svg>`` tag for ``icon_file`` or None."""
        if icon_file not in self._svg_text:
            text = await self._fetch_text(self.location(icon_file))
            if text is None:
                logger.warning("Icon file not found: %s", self.location(icon_file))
            self._svg_text[icon_file] = text
        text = self._svg_text[icon_file]
        if text is None:
            return None

        svg = BeautifulSoup(text.strip(), "html.parser").find("svg")
        if svg is None:
            logger.warning("Invalid SVG in file: %s", icon_file)
            return None
        svg["preserveAspectRatio"] = "xMidYMid meet"
        dom.set_style(svg, {"width": "100%", "height": "100%"})
        return svg.extract()

    async def load_stylesheet(self, icon_file: str) -> bool:
        """Inject ``<stem>.css`` into the document head once per icon stem."""
        stem = icon_stem(icon_file)
        if not stem:
            logger.warning("Invalid icon filename for CSS loading: %s", icon_file)
            return False
        if stem in self._stylesheets:
            return self._stylesheets[stem]
        location = self.location(f"{stem}.css")
        css = await self._fetch_text(location)
        if css is None:
            logger.info(
                "No companion CSS file found for %s (expected: %s)", icon_file, location
            )
            self._stylesheets[stem] = False
            return False

        existing = self.soup.find("style", attrs={"data-animation-css": stem})
        if existing is not None:
            existing.string = css
        else:
            style = dom.create_element(
                self.soup, "style", attrs={"data-animation-css": stem}, text=css
            )
            head = self.soup.head or self.soup
            head.append(style)
        self._stylesheets[stem] = True
        return True


class AnimationTimingEngine:
    """Attach icon animations to pages and run one timeline per instance.

    Timeline for a triggered instance, relative to the trigger::

        0 ........ delay ........ exit_start ........ exit_start + exit
        DELAYED    VISIBLE/PULSING          EXITING              REMOVED

    where ``exit_start = max(delay, delay + duration - exit)``. The pulse
    phase exists only when ``exit_start > delay``. :meth:`hide` replaces
    whatever part of the timeline is still pending with a fade to zero.
    """

    def __init__(
        self,
        state: GalleryState,
        soup: BeautifulSoup,
        settings: AnimationSettings,
        scheduler: Scheduler,
        visibility: VisibilityHub,
        icons: IconLibrary,
        sink: Optional[EventSink] = None,
    ) -> None:
        self.state = state
        self.soup = soup
        self.settings = settings
        self.scheduler = scheduler
        self.visibility = visibility
        self.icons = icons
        self.sink = sink
        self._subscriptions: Dict[int, Subscription] = {}

    async def create_instance(
        self, config: AnimationConfig, page_number: int
    ) -> Optional[AnimationInstance]:
        await self.icons.load_stylesheet(config.icon_ref)
        icon = await self.icons.load_icon(config.icon_ref)
        if icon is None:
            logger.warning("Failed to load icon: %s", config.icon_ref)
            return None

        aspect_ratio = svg_aspect_ratio(icon)
        if aspect_ratio is None:
            logger.warning(
                "Could not extract aspect ratio from %s, using 1:1 (square)",
                config.icon_ref,
            )
            aspect_ratio = 1.0
        box = animation_box(config.center_x, config.center_y, config.size, aspect_ratio)

        class_name = icon_class_name(config.icon_ref)
        classes = f"page-animation {class_name}" if class_name else "page-animation"
        element = dom.create_element(self.soup, "div", classes, children=[icon])
        dom.set_style(
            element,
            {
                "position": "absolute",
                "left": f"{format_number(box.left)}%",
                "top": f"{format_number(box.top)}%",
                "width": f"{format_number(box.width)}%",
                "height": f"{format_number(box.height)}%",
                "animation-duration": f"{format_number(config.duration_ms)}ms",
                "opacity": "0",
                "visibility": "hidden",
            },
        )
        return AnimationInstance(
            element=element,
            config=config,
            page_number=page_number,
            class_name=class_name,
        )

    async def attach(
        self, record: PageRecord, configs: Optional[Sequence[AnimationConfig]] = None
    ) -> List[AnimationInstance]:
        page_number = record.page_number
        if configs is None:
            configs = self.state.animation_configs_by_page.get(page_number, [])
        configs = [config for config in configs if config.page_number == page_number]
        if not configs:
            return []

        target = record.dom_handle.find("div", class_=dom.ZOOM_IMAGE_CLASS)
        if target is None:
            target = record.dom_handle
        instances = []
        for config in configs:
            instance = await self.create_instance(config, page_number)
            if instance is None:
                logger.warning("Failed to create animation element for page %d", page_number)
                continue
            target.append(instance.element)
            instances.append(instance)
            logger.debug(
                "Attached animation to page %d at center (%s%%, %s%%) with size %s%%",
                page_number,
                config.center_x,
                config.center_y,
                config.size,
            )

        if instances:
            self.register(page_number, instances)
        return instances

    def register(self, page_number: int, instances: Sequence[AnimationInstance]) -> None:
        """Bind each instance to its trigger for ``page_number``."""
        self.state.page_animations.setdefault(page_number, []).extend(instances)
        triggers = {instance.trigger_type for instance in instances}
        if TriggerType.VISIBLE not in triggers:
            return
        if self.visibility.is_visible(page_number):
            self.trigger(page_number, TriggerType.VISIBLE)
            return
        if page_number not in self._subscriptions:

            def _on_visibility(visible: bool) -> None:
                if visible:
                    self.trigger(page_number, TriggerType.VISIBLE)

            self._subscriptions[page_number] = self.visibility.subscribe(
                page_number, _on_visibility
            )

    def pointer_enter(self, page_number: int) -> int:
        """Hover trigger; ignored while the page is out of view."""
        if not self.visibility.is_visible(page_number):
            return 0
        return self.trigger(page_number, TriggerType.HOVER)

    def trigger(self, page_number: int, trigger_type: TriggerType) -> int:
        """Start every ``trigger_type`` animation on the page, once per page."""
        key = (trigger_type, page_number)
        if key in self.state.triggered_pages:
            return 0
        instances = [
            instance
            for instance in self.state.page_animations.get(page_number, [])
            if instance.trigger_type is trigger_type
        ]
        if not instances:
            return 0
        self.state.triggered_pages.add(key)
        started = sum(1 for instance in instances if self.start(instance))
        if started:
            logger.info(
                "Started %d animation(s) for page %d (%s trigger)",
                started,
                page_number,
                trigger_type.value,
            )
            emit(self.sink, "animation.triggered", page_number=page_number, count=started)
        if trigger_type is TriggerType.VISIBLE:
            subscription = self._subscriptions.pop(page_number, None)
            if subscription is not None:
                subscription.cancel()
        return started

    def _schedule(
        self, instance: AnimationInstance, delay_ms: float, callback: Callable[[], None]
    ) -> None:
        instance.timers.append(self.scheduler.call_later(delay_ms, callback))

    def start(self, instance: AnimationInstance) -> bool:
        if instance.phase is not AnimationPhase.CREATED:
            return False
        config = instance.config
        minimum = self.settings.entrance_ms + self.settings.exit_ms
        if config.duration_ms < minimum:
            logger.warning(
                "Animation duration (%sms) is less than minimum (%sms) for entrance + exit.",
                format_number(config.duration_ms),
                format_number(minimum),
            )
        exit_start = max(
            config.delay_ms, config.delay_ms + config.duration_ms - self.settings.exit_ms
        )
        pulse = exit_start > config.delay_ms

        instance.set_phase(AnimationPhase.DELAYED)
        if config.delay_ms > 0:
            self._schedule(
                instance,
                config.delay_ms,
                lambda: self._show(instance, pulse, exit_start - config.delay_ms),
            )
        else:
            self._show(instance, pulse, exit_start)
        return True

    def _show(self, instance: AnimationInstance, pulse: bool, until_exit_ms: float) -> None:
        if instance.phase is not AnimationPhase.DELAYED:
            return
        dom.set_style(
            instance.element,
            {"visibility": "visible", "opacity": "1", "transition": "opacity 0.3s ease"},
        )
        instance.set_phase(AnimationPhase.VISIBLE)
        if pulse:
            dom.add_class(instance.element, "pulsing")
            instance.set_phase(AnimationPhase.PULSING)
        self._schedule(instance, until_exit_ms, lambda: self._exit(instance))

    def _exit(self, instance: AnimationInstance) -> None:
        if instance.phase not in (AnimationPhase.VISIBLE, AnimationPhase.PULSING):
            return
        dom.remove_class(instance.element, "pulsing")
        dom.add_class(instance.element, "exiting")
        instance.set_phase(AnimationPhase.EXITING)
        self._schedule(instance, self.settings.exit_ms, lambda: self._remove(instance))

    def _remove(self, instance: AnimationInstance) -> None:
        if instance.phase is not AnimationPhase.EXITING:
            return
        instance.element.extract()
        instance.timers.clear()
        instance.set_phase(AnimationPhase.REMOVED)
        page_instances = self.state.page_animations.get(instance.page_number, [])
        if instance in page_instances:
            page_instances.remove(instance)

    def hide(self, instance: AnimationInstance) -> bool:
        """Fade ``instance`` out for good; repeated calls are ignored."""
        if instance.phase not in _HIDEABLE:
            return False
        instance.cancel_timers()
        dom.add_class(instance.element, HIDDEN_CLASS)
        dom.set_style(
            instance.element,
            {
                "transition": f"opacity {format_number(self.settings.hide_fade_ms / 1000)}s ease-out",
                "opacity": "0",
            },
        )
        instance.set_phase(AnimationPhase.HIDING)
        self._schedule(
            instance, self.settings.hide_fade_ms, lambda: self._finish_hide(instance)
        )
        return True

    def _finish_hide(self, instance: AnimationInstance) -> None:
        if instance.phase is not AnimationPhase.HIDING:
            return
        dom.add_class(instance.element, HIDDEN_PERMANENT_CLASS)
        dom.remove_class(instance.element, HIDDEN_CLASS)
        instance.timers.clear()
        instance.set_phase(AnimationPhase.HIDDEN_PERMANENT)

    def hide_page_animation(self, page_number: int, class_name: str) -> int:
        """Hide every animation with ``class_name`` on a page."""
        if page_number not in self.state.records:
            logger.warning("Page %d not found for animation hide", page_number)
            return 0
        hidden = 0
        for instance in self.state.page_animations.get(page_number, []):
            if not dom.has_class(instance.element, class_name):
                continue
            if self.hide(instance):
                hidden += 1
                logger.info("Hiding animation %s on page %d", class_name, page_number)
        return hidden
