"""Utility helpers for page naming, asset paths and identifiers."""

from __future__ import annotations

import re
from typing import Optional

from .config import GalleryConfig

YOUTUBE_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"^([a-zA-Z0-9_-]{11})$"),
)
_CLASS_PATTERN = re.compile(r"[^a-zA-Z0-9_-]")


def pad_page_number(page_number: int, padding: int) -> str:
    """Zero-pad a page number to the configured filename width."""
    return str(page_number).zfill(padding)


def join_location(*parts: str) -> str:
    """Join URL or path fragments with single forward slashes."""
    cleaned = [part.strip("/") for part in parts[1:] if part]
    head = parts[0].rstrip("/") if parts and parts[0] else ""
    if head:
        cleaned.insert(0, head)
    return "/".join(cleaned)


def asset_location(config: GalleryConfig, page_number: int, fmt: str) -> str:
    """Return ``{base}/{folder}/{format}/{prefix}{NN}.{format}`` for a page."""
    filename = f"{config.filename_prefix}{pad_page_number(page_number, config.filename_padding)}.{fmt}"
    return join_location(config.base, config.image_folder, fmt, filename)


def extract_youtube_id(value: str) -> Optional[str]:
    """Extract a YouTube video id from a URL or bare id."""
    for pattern in YOUTUBE_PATTERNS:
        match = pattern.search(value)
        if match and match.group(1):
            return match.group(1)
    return None


def icon_stem(icon_file: str) -> str:
    """Return ``zoom-hint`` for ``icons/zoom-hint.svg``."""
    name = icon_file.rsplit("/", 1)[-1]
    return re.sub(r"\.svg$", "", name, flags=re.IGNORECASE)


def icon_class_name(icon_file: str) -> Optional[str]:
    """Build the ``animation-<stem>`` CSS class for an icon file."""
    if not icon_file:
        return None
    class_name = _CLASS_PATTERN.sub("-", icon_stem(icon_file))
    class_name = re.sub(r"-+", "-", class_name).strip("-")
    if not class_name:
        return None
    if not class_name.startswith("animation-"):
        class_name = f"animation-{class_name}"
    return class_name


def format_number(value: float) -> str:
    """Render a float compactly and deterministically for style attributes."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text
