"""Viewport geometry, device classification and visibility notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Set, Tuple

from .config import LayoutSettings
from .geometry import fit_to_width, intersection_ratio
from .models import DeviceClass

logger = logging.getLogger("pagefolio")

VisibilityCallback = Callable[[bool], None]


class Viewport:
    """The window the gallery is laid out in."""

    def __init__(
        self,
        width: float,
        height: float,
        layout: LayoutSettings,
        scroll_y: float = 0.0,
    ) -> None:
        self.width = width
        self.height = height
        self.layout = layout
        self.scroll_y = scroll_y

    def device_class(self) -> DeviceClass:
        """Mobile at or below the breakpoint; evaluated fresh on every call."""
        if self.width <= self.layout.mobile_breakpoint:
            return DeviceClass.MOBILE
        return DeviceClass.DESKTOP

    @property
    def is_mobile(self) -> bool:
        return self.device_class() is DeviceClass.MOBILE

    @property
    def content_width(self) -> float:
        return min(self.width, self.layout.max_page_width)

    def rendered_image_size(
        self, natural_width: float, natural_height: float
    ) -> Tuple[float, float]:
        return fit_to_width(natural_width, natural_height, self.content_width)

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    def view_bounds(self) -> Tuple[float, float]:
        bottom = self.scroll_y + self.height - self.layout.visibility_bottom_margin
        return self.scroll_y, max(self.scroll_y, bottom)

    def is_span_visible(self, top: float, height: float) -> bool:
        view_top, view_bottom = self.view_bounds()
        ratio = intersection_ratio(top, height, view_top, view_bottom)
        return ratio > 0 and ratio >= min(
            self.layout.visibility_threshold, (view_bottom - view_top) / height
        )


class Subscription:
    def __init__(self, hub: "VisibilityHub", key: int, callback: VisibilityCallback) -> None:
        self._hub = hub
        self._key = key
        self._callback = callback
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._hub._remove(self._key, self._callback)
            self.active = False


class VisibilityHub:
    """Push-based ``subscribe(page) -> stream of visibility changes``."""

    def __init__(self) -> None:
        self._subscribers: Dict[int, List[VisibilityCallback]] = defaultdict(list)
        self._visible: Set[int] = set()

    def subscribe(self, key: int, callback: VisibilityCallback) -> Subscription:
        self._subscribers[key].append(callback)
        return Subscription(self, key, callback)

    def _remove(self, key: int, callback: VisibilityCallback) -> None:
        callbacks = self._subscribers.get(key)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    def subscriber_count(self, key: int) -> int:
        return len(self._subscribers.get(key, ()))

    def is_visible(self, key: int) -> bool:
        return key in self._visible

    @property
    def visible_keys(self) -> Set[int]:
        return set(self._visible)

    def publish(self, key: int, visible: bool) -> None:
        """Notify subscribers of ``key`` when its visibility changes."""
        if visible == (key in self._visible):
            return
        if visible:
            self._visible.add(key)
        else:
            self._visible.discard(key)
        for callback in list(self._subscribers.get(key, ())):
            try:
                callback(visible)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Visibility callback for page %s failed", key)

    def update(self, visible_keys: Iterable[int], known_keys: Iterable[int]) -> None:
        visible = set(visible_keys)
        for key in known_keys:
            self.publish(key, key in visible)
