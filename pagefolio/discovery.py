"""Sequential, format-aware discovery of numbered page images."""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from .config import GalleryConfig
from .images import (
    FetchError,
    FetchTimeout,
    Fetcher,
    ImageDecodeError,
    decode_image_async,
    fetch_with_timeout,
    sniff_format,
)
from .models import ImageCandidate
from .observability import EventSink, emit
from .utils import asset_location

logger = logging.getLogger("pagefolio")


class FormatAwareDiscoveryLoader:
    """Probe pages 1, 2, 3, ... against a prioritised list of encodings.

    The most recently successful format is tried first for the next page.
    Discovery ends after ``max_consecutive_failures`` absent pages once at
    least one page was found, or at ``max_pages`` when nothing was found.
    """

    def __init__(
        self,
        config: GalleryConfig,
        fetcher: Fetcher,
        sink: Optional[EventSink] = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.sink = sink
        self.next_page = 1
        self.consecutive_failures = 0
        self.found_count = 0
        self.preferred_format: Optional[str] = None
        self.exhausted = False
        self.probed_pages: List[int] = []

    @property
    def found_any(self) -> bool:
        return self.found_count > 0

    @property
    def no_content(self) -> bool:
        return self.exhausted and not self.found_any

    def probe_order(self) -> List[str]:
        formats = list(self.config.formats)
        if self.preferred_format is None:
            return formats
        return [self.preferred_format] + [
            fmt for fmt in formats if fmt != self.preferred_format
        ]

    async def next(self) -> Optional[ImageCandidate]:
        """Return the next discovered page, or None at end of sequence."""
        if self.exhausted:
            return None
        if not self.probed_pages:
            emit(self.sink, "init", name="discovery.start")

        while self.next_page <= self.config.max_pages:
            page_number = self.next_page
            self.next_page += 1
            self.probed_pages.append(page_number)
            candidate = await self.find_candidate(page_number)
            if candidate is not None:
                self.found_count += 1
                self.consecutive_failures = 0
                return candidate

            self.consecutive_failures += 1
            if (
                self.found_any
                and self.consecutive_failures >= self.config.max_consecutive_failures
            ):
                logger.debug(
                    "Stopping discovery after %d consecutive missing pages (last probed %d)",
                    self.consecutive_failures,
                    page_number,
                )
                break

        self.exhausted = True
        return None

    async def find_candidate(self, page_number: int) -> Optional[ImageCandidate]:
        """Try every format for ``page_number``; the first that decodes wins."""
        for fmt in self.probe_order():
            candidate = await self._try_format(page_number, fmt)
            if candidate is None:
                continue
            if fmt != self.preferred_format:
                logger.debug("Preferred format is now %s (page %d)", fmt, page_number)
            self.preferred_format = fmt
            return candidate
        logger.debug("Page %d not available in any format", page_number)
        return None

    async def _try_format(self, page_number: int, fmt: str) -> Optional[ImageCandidate]:
        location = asset_location(self.config, page_number, fmt)
        start = time.perf_counter()
        status: Optional[int] = None
        outcome = "error"
        sniffed: Optional[str] = None
        try:
            response = await fetch_with_timeout(
                self.fetcher, location, self.config.fetch_timeout
            )
            status = response.status
            if response.status == 404:
                outcome = "missing"
                logger.debug("Page %d not found as %s", page_number, fmt)
                return None
            if not response.ok:
                outcome = "server-error"
                logger.warning(
                    "Server error loading %s: %s %s",
                    location,
                    response.status,
                    response.reason,
                )
                return None

            try:
                image = await decode_image_async(response.content)
            except ImageDecodeError as exc:
                outcome = "undecodable"
                logger.debug("Could not decode %s: %s", location, exc)
                return None

            sniffed = sniff_format(response)
            if sniffed and sniffed != fmt:
                logger.debug("%s is actually %s data", location, sniffed)
            outcome = "ok"
            return ImageCandidate(
                page_number=page_number,
                path=location,
                format=fmt,
                payload=image,
                sniffed_format=sniffed,
            )
        except FetchTimeout as exc:
            outcome = "timeout"
            logger.warning("Timeout loading %s: %s", location, exc)
            return None
        except FetchError as exc:
            logger.warning("Network error loading %s: %s", location, exc)
            return None
        finally:
            emit(
                self.sink,
                "fetch",
                location=location,
                status=status,
                outcome=outcome,
                sniffed=sniffed,
                elapsed_ms=(time.perf_counter() - start) * 1000,
            )

    def finalize(self) -> None:
        if self.found_count > 0:
            logger.info("Auto-discovered %d images", self.found_count)
        else:
            logger.warning("Automatic discovery did not find any images.")
