"""Configuration objects and constants for the gallery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

DEFAULT_FORMAT_PRIORITY: Tuple[str, ...] = ("avif", "webp", "png")


@dataclass
class HotspotSettings:
    """Touch-target and discovery-hint settings for hotspots."""

    min_touch_size: float = 5.0
    min_touch_scale: float = 0.04
    discovery_delay_ms: float = 2500.0
    discovery_duration_ms: float = 3000.0


@dataclass
class AnimationSettings:
    """Fixed phase durations used by the animation timeline."""

    entrance_ms: float = 700.0
    exit_ms: float = 600.0
    hide_fade_ms: float = 1500.0
    default_delay_ms: float = 0.0


@dataclass
class LayoutSettings:
    """Viewport breakpoints and visibility thresholds."""

    mobile_breakpoint: int = 768
    tablet_breakpoint: int = 1024
    max_page_width: int = 1200
    fallback_page_height: int = 400
    visibility_threshold: float = 0.15
    visibility_bottom_margin: int = 50


@dataclass
class PerformanceSettings:
    """Debounce windows for resize and orientation bursts."""

    resize_debounce_ms: float = 150.0
    orientation_change_delay_ms: float = 200.0


@dataclass
class GalleryConfig:
    """Top-level settings that control discovery and rendering behaviour."""

    base: str = "."
    image_folder: str = "images"
    formats: Tuple[str, ...] = DEFAULT_FORMAT_PRIORITY
    filename_prefix: str = "page_"
    filename_padding: int = 2
    max_pages: int = 100
    max_consecutive_failures: int = 5
    fetch_timeout: float = 5.0
    hotspot_file: str = "config/hotspots.txt"
    animation_file: str = "config/animations.txt"
    icons_folder: str = "assets/icons"
    hotspots: HotspotSettings = field(default_factory=HotspotSettings)
    animations: AnimationSettings = field(default_factory=AnimationSettings)
    layout: LayoutSettings = field(default_factory=LayoutSettings)
    performance: PerformanceSettings = field(default_factory=PerformanceSettings)

    def __post_init__(self) -> None:
        if not self.formats:
            raise ValueError("At least one image format must be configured")
        self.formats = tuple(fmt.lower().lstrip(".") for fmt in self.formats)
        if self.max_consecutive_failures < 1:
            raise ValueError("max_consecutive_failures must be >= 1")
        if self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")
