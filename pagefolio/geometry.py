"""Coordinate transforms between configured percentages and rendered boxes.

Hotspot configuration is authored bottom-up in percentages of the natural
image, while the rendered page is laid out top-down in whatever box the
viewport leaves for it. Everything in this module is a pure function.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .models import HotspotConfig


@dataclass(frozen=True)
class ImageDimensions:
    natural_width: float
    natural_height: float
    image_width: float
    image_height: float


@dataclass(frozen=True)
class HotspotBox:
    """Box in percentages of the rendered image plus its rendered pixel size."""

    left: float
    top: float
    width: float
    height: float
    rendered_width: float
    rendered_height: float


@dataclass(frozen=True)
class OverlayBox:
    left: float
    top: float
    width: float
    height: float


def desktop_hotspot_box(config: HotspotConfig, dims: ImageDimensions) -> HotspotBox:
    """Pass percentages through, flipping ``bottom`` into ``top``."""
    return HotspotBox(
        left=config.left,
        top=100 - config.bottom - config.height,
        width=config.width,
        height=config.height,
        rendered_width=(config.width / 100) * dims.image_width,
        rendered_height=(config.height / 100) * dims.image_height,
    )


def min_touch_side(
    image_width: float,
    image_height: float,
    min_touch_size: float,
    min_touch_scale: float,
) -> float:
    """Smallest acceptable side of a touch target on this rendered image."""
    return max(min_touch_size, min(image_width, image_height) * min_touch_scale)


def touch_scale(
    width_px: float,
    height_px: float,
    image_width: float,
    image_height: float,
    min_touch_size: float,
    min_touch_scale: float,
) -> float:
    """Uniform factor that brings the shorter side up to the touch minimum."""
    target = min_touch_side(image_width, image_height, min_touch_size, min_touch_scale)
    current = min(width_px, height_px)
    if current <= 0 or current >= target:
        return 1.0
    return target / current


def mobile_hotspot_box(
    config: HotspotConfig,
    dims: ImageDimensions,
    min_touch_size: float,
    min_touch_scale: float,
) -> HotspotBox:
    """Scale to rendered pixels, inflate small targets and clamp to the image."""
    natural_width_px = dims.natural_width * config.width / 100
    natural_height_px = dims.natural_height * config.height / 100
    natural_left = dims.natural_width * config.left / 100
    natural_bottom = dims.natural_height * config.bottom / 100
    natural_top = dims.natural_height - natural_bottom - natural_height_px

    scale_x = dims.image_width / dims.natural_width
    scale_y = dims.image_height / dims.natural_height
    width = natural_width_px * scale_x
    height = natural_height_px * scale_y
    left = natural_left * scale_x
    top = natural_top * scale_y

    factor = touch_scale(
        width, height, dims.image_width, dims.image_height, min_touch_size, min_touch_scale
    )
    if factor > 1:
        base_width, base_height = width, height
        width *= factor
        height *= factor
        left -= (width - base_width) / 2
        top -= (height - base_height) / 2

    width = min(width, dims.image_width)
    height = min(height, dims.image_height)
    left = max(0.0, min(left, dims.image_width - width))
    top = max(0.0, min(top, dims.image_height - height))

    return HotspotBox(
        left=left / dims.image_width * 100,
        top=top / dims.image_height * 100,
        width=width / dims.image_width * 100,
        height=height / dims.image_height * 100,
        rendered_width=width,
        rendered_height=height,
    )


def border_perimeter(width_px: float, height_px: float) -> float:
    return 2 * (width_px + height_px)


def fit_to_width(
    natural_width: float, natural_height: float, available_width: float
) -> Tuple[float, float]:
    """Rendered size of an image filling the column without upscaling."""
    if natural_width <= 0 or natural_height <= 0:
        return 0.0, 0.0
    width = min(float(natural_width), float(available_width))
    return width, width * natural_height / natural_width


def animation_box(
    center_x: float, center_y: float, size: float, aspect_ratio: float = 1.0
) -> OverlayBox:
    """Box of ``size`` percent width centred on ``(center_x, center_y)``."""
    width = size
    height = size / aspect_ratio if aspect_ratio > 0 else size
    return OverlayBox(
        left=center_x - width / 2,
        top=center_y - height / 2,
        width=width,
        height=height,
    )


def intersection_ratio(
    top: float, height: float, view_top: float, view_bottom: float
) -> float:
    """Fraction of a vertical span ``[top, top + height)`` inside the view."""
    if height <= 0:
        return 0.0
    overlap = min(top + height, view_bottom) - max(top, view_top)
    return max(0.0, overlap) / height
