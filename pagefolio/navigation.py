"""Deep-link navigation to a page that may not have rendered yet."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from .config import GalleryConfig
from .dom import LoadingIndicator
from .models import PageRecord
from .state import GalleryState
from .sync import NavigationSynchronizer
from .utils import pad_page_number

logger = logging.getLogger("pagefolio")

HASH_PATTERN = re.compile(r"^#page-(\d+)$", re.IGNORECASE)


def parse_page_hash(fragment: str) -> Optional[int]:
    """``#page-7`` → 7; anything else → None."""
    match = HASH_PATTERN.match(fragment.strip())
    if not match:
        return None
    page_number = int(match.group(1))
    return page_number if page_number >= 1 else None


@dataclass
class NavigationResult:
    page_number: int
    record: Optional[PageRecord]
    not_found: bool = False

    @property
    def found(self) -> bool:
        return self.record is not None


class Navigator:
    """Scroll to page ``n`` now, or wait for the pipeline to render it."""

    def __init__(
        self,
        config: GalleryConfig,
        state: GalleryState,
        synchronizer: NavigationSynchronizer,
        indicator: LoadingIndicator,
        scroll_to_page: Callable[[PageRecord], None],
    ) -> None:
        self.config = config
        self.state = state
        self.synchronizer = synchronizer
        self.indicator = indicator
        self.scroll_to_page = scroll_to_page

    async def navigate_to_page(self, page_number: int) -> Optional[NavigationResult]:
        if isinstance(page_number, bool) or not isinstance(page_number, int) or page_number < 1:
            logger.debug("Ignoring navigation to invalid page %r", page_number)
            return None

        existing = self.state.records.get(page_number)
        if existing is not None and existing.settled:
            self.scroll_to_page(existing)
            return NavigationResult(page_number, existing)

        padded = pad_page_number(page_number, self.config.filename_padding)
        self.indicator.show(f"Loading page {padded}…")
        loader_active = True
        try:
            record = await self.synchronizer.wait_for_page(page_number)
            if record is not None:
                self.scroll_to_page(record)
                return NavigationResult(page_number, record)
            if self.state.all_pages_loaded:
                logger.warning("Requested page %d is not available.", page_number)
                self.indicator.hide(f"Page {padded} not found")
                loader_active = False
                return NavigationResult(page_number, None, not_found=True)
            return NavigationResult(page_number, None)
        finally:
            if loader_active:
                self.indicator.hide()

    async def navigate_to_hash(self, fragment: str) -> Optional[NavigationResult]:
        page_number = parse_page_hash(fragment)
        if page_number is None:
            return None
        return await self.navigate_to_page(page_number)
