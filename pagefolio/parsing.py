"""Parse and validate the hotspot and animation text configuration files.

Parsing is pure: each function takes the file text and returns validated
records. Grouping the records by page is a separate step so callers decide
where the index lives.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, TypeVar

from .images import FetchError, Fetcher, load_text
from .models import AnimationConfig, HotspotConfig, TriggerType
from .utils import extract_youtube_id

logger = logging.getLogger("pagefolio")

T = TypeVar("T", HotspotConfig, AnimationConfig)


def _iter_lines(text: str) -> Iterator[str]:
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        yield line


def _parse_page_number(value: str) -> Optional[int]:
    try:
        number = int(value)
    except ValueError:
        return None
    return number if number >= 1 else None


def _parse_float(value: str) -> Optional[float]:
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _is_percentage(value: Optional[float]) -> bool:
    return value is not None and 0 <= value <= 100


def _is_positive(value: Optional[float], maximum: float = math.inf) -> bool:
    return value is not None and 0 < value <= maximum


def parse_hotspot_line(line: str) -> Optional[HotspotConfig]:
    """``page, target, left%, bottom%, width%, height%`` → config or None."""
    parts = [part.strip() for part in line.split(",")]
    if len(parts) != 6:
        logger.warning("Invalid hotspot config line: %s", line)
        return None
    page, target, left, bottom, width, height = parts

    video_id = extract_youtube_id(target)
    if not video_id:
        logger.warning("Could not extract video ID from: %s", target)
        return None

    page_number = _parse_page_number(page)
    if page_number is None:
        logger.warning('Invalid page number "%s" in hotspot config: %s', page, line)
        return None

    raw = {"left": left, "bottom": bottom, "width": width, "height": height}
    values = {name: _parse_float(value) for name, value in raw.items()}
    for name in ("left", "bottom"):
        if not _is_percentage(values[name]):
            logger.warning(
                'Invalid %s%% "%s" (must be 0-100) in hotspot config: %s',
                name,
                raw[name],
                line,
            )
            return None
    for name in ("width", "height"):
        if not _is_positive(values[name], 100):
            logger.warning(
                'Invalid %s%% "%s" (must be >0 and <=100) in hotspot config: %s',
                name,
                raw[name],
                line,
            )
            return None

    return HotspotConfig(
        page_number=page_number,
        target_ref=video_id,
        left=values["left"],
        bottom=values["bottom"],
        width=values["width"],
        height=values["height"],
    )


def parse_hotspot_config(text: str) -> List[HotspotConfig]:
    configs = []
    for line in _iter_lines(text):
        config = parse_hotspot_line(line)
        if config is not None:
            configs.append(config)
    return configs


def _parse_trigger(value: str, line: str) -> TriggerType:
    normalized = value.strip().lower()
    try:
        return TriggerType(normalized)
    except ValueError:
        logger.warning(
            'Invalid trigger type "%s" in animation config: %s. Defaulting to "visible".',
            value,
            line,
        )
        return TriggerType.VISIBLE


def parse_animation_line(line: str) -> Optional[AnimationConfig]:
    """``page, icon, centerX%, centerY%, size%, duration[, delay[, trigger]]``."""
    parts = [part.strip() for part in line.split(",")]
    if not 6 <= len(parts) <= 8:
        logger.warning("Invalid animation config line: %s", line)
        return None
    page, icon, center_x, center_y, size, duration = parts[:6]
    delay = parts[6] if len(parts) > 6 and parts[6] else "0"
    trigger = parts[7] if len(parts) > 7 and parts[7] else TriggerType.VISIBLE.value

    page_number = _parse_page_number(page)
    if page_number is None:
        logger.warning('Invalid page number "%s" in animation config: %s', page, line)
        return None

    if not icon or not icon.lower().endswith(".svg"):
        logger.warning('Invalid icon filename "%s" in animation config: %s', icon, line)
        return None

    cx, cy = _parse_float(center_x), _parse_float(center_y)
    if not (_is_percentage(cx) and _is_percentage(cy)):
        logger.warning("Invalid center position percentages in animation config: %s", line)
        return None

    parsed_size = _parse_float(size)
    if not _is_positive(parsed_size):
        logger.warning("Invalid size value in animation config (must be > 0): %s", line)
        return None

    parsed_duration = _parse_float(duration)
    if not _is_positive(parsed_duration):
        logger.warning("Invalid duration in animation config: %s", line)
        return None

    parsed_delay = _parse_float(delay)
    if parsed_delay is None or parsed_delay < 0:
        logger.warning("Invalid delay in animation config: %s", line)
        return None

    return AnimationConfig(
        page_number=page_number,
        icon_ref=icon,
        center_x=cx,
        center_y=cy,
        size=parsed_size,
        duration_ms=parsed_duration,
        delay_ms=parsed_delay,
        trigger_type=_parse_trigger(trigger, line),
    )


def parse_animation_config(text: str) -> List[AnimationConfig]:
    configs = []
    for line in _iter_lines(text):
        config = parse_animation_line(line)
        if config is not None:
            configs.append(config)
    return configs


def group_by_page(configs: Iterable[T]) -> Dict[int, List[T]]:
    grouped: Dict[int, List[T]] = defaultdict(list)
    for config in configs:
        grouped[config.page_number].append(config)
    return dict(grouped)


async def load_config_text(
    fetcher: Fetcher, location: str, timeout: float, label: str
) -> Optional[str]:
    """Fetch a config file; a missing or unreachable file means "no entries"."""
    try:
        text = await load_text(fetcher, location, timeout)
    except FetchError as exc:
        logger.info("Could not load %s configuration: %s", label, exc)
        return None
    if text is None:
        logger.info("No %s file found at %s - no %s will be added", label, location, label)
    return text


def summarize(configs: Sequence[object], label: str) -> None:
    logger.info("Loaded %d %s configurations", len(configs), label)
