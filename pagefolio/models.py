"""Data models used throughout the discovery and render pipeline."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from bs4 import Tag

logger = logging.getLogger("pagefolio")


class RenderState(enum.Enum):
    PENDING = "pending"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    RenderState.PENDING: {RenderState.LOADING},
    RenderState.LOADING: {RenderState.READY, RenderState.FAILED},
    RenderState.READY: set(),
    RenderState.FAILED: set(),
}


class TriggerType(str, enum.Enum):
    HOVER = "hover"
    VISIBLE = "visible"


class DeviceClass(str, enum.Enum):
    MOBILE = "mobile"
    DESKTOP = "desktop"


class InvalidTransition(RuntimeError):
    """Raised when a page record is asked to leave a terminal state."""


@dataclass(frozen=True)
class ImageCandidate:
    """A discovered page image, decoded and ready to render."""

    page_number: int
    path: str
    format: str
    payload: Any = field(default=None, compare=False, repr=False)
    sniffed_format: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class HotspotConfig:
    """Clickable region; percentages relative to the natural image size."""

    page_number: int
    target_ref: str
    left: float
    bottom: float
    width: float
    height: float


@dataclass(frozen=True)
class AnimationConfig:
    """Decorative icon animation anchored at a centre point on a page."""

    page_number: int
    icon_ref: str
    center_x: float
    center_y: float
    size: float
    duration_ms: float
    delay_ms: float = 0.0
    trigger_type: TriggerType = TriggerType.VISIBLE


class PageImage:
    """Rendered ``<img>`` of a page along with its decode status.

    Natural dimensions are unknown until the image reports decode
    completion; callbacks registered through :meth:`when_decoded` run once.
    """

    def __init__(
        self,
        element: Tag,
        natural_width: Optional[int] = None,
        natural_height: Optional[int] = None,
    ) -> None:
        self.element = element
        self.natural_width = natural_width
        self.natural_height = natural_height
        self._callbacks: List[Callable[[], None]] = []

    @property
    def decoded(self) -> bool:
        return bool(self.natural_width) and bool(self.natural_height)

    def when_decoded(self, callback: Callable[[], None]) -> None:
        if self.decoded:
            callback()
            return
        self._callbacks.append(callback)

    def mark_decoded(self, natural_width: int, natural_height: int) -> None:
        self.natural_width = natural_width
        self.natural_height = natural_height
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


@dataclass
class PageRecord:
    """Render bookkeeping for a single discovered page."""

    page_number: int
    dom_handle: Tag
    candidate: Optional[ImageCandidate] = None
    render_state: RenderState = RenderState.PENDING
    image: Optional[PageImage] = None
    rendered_height: float = 0.0

    def transition(self, new_state: RenderState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.render_state]:
            raise InvalidTransition(
                f"Page {self.page_number} cannot move from "
                f"{self.render_state.value} to {new_state.value}"
            )
        logger.debug(
            "Page %d: %s -> %s",
            self.page_number,
            self.render_state.value,
            new_state.value,
        )
        self.render_state = new_state

    @property
    def settled(self) -> bool:
        return self.render_state in (RenderState.READY, RenderState.FAILED)
