"""Image fetching, sniffing and decoding utilities."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Protocol

import requests
from filetype import guess
from PIL import Image

logger = logging.getLogger("pagefolio")

MAX_IMAGE_BYTES = 64 * 1024 * 1024


class FetchError(RuntimeError):
    """Network or filesystem failure while fetching an asset."""


class FetchTimeout(FetchError):
    """The fetch did not complete within its timeout."""


class ImageDecodeError(ValueError):
    """Fetched bytes could not be decoded into an image."""


@dataclass
class FetchResponse:
    location: str
    status: int
    content: bytes = b""
    content_type: str = ""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == 200

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class Fetcher(Protocol):
    async def fetch(self, location: str, timeout: float) -> FetchResponse: ...


class HttpFetcher:
    """Fetch assets over HTTP with a shared ``requests`` session."""

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session or requests.Session()

    def _get(self, location: str, timeout: float) -> FetchResponse:
        try:
            resp = self.session.get(location, timeout=timeout)
        except requests.Timeout as exc:
            raise FetchTimeout(f"Timed out fetching {location}") from exc
        except requests.RequestException as exc:
            raise FetchError(f"Network error fetching {location}: {exc}") from exc
        logger.debug("GET %s -> %s", location, resp.status_code)
        return FetchResponse(
            location=location,
            status=resp.status_code,
            content=resp.content if resp.status_code == 200 else b"",
            content_type=resp.headers.get("Content-Type", ""),
            reason=resp.reason or "",
        )

    async def fetch(self, location: str, timeout: float) -> FetchResponse:
        return await asyncio.to_thread(self._get, location, timeout)


class LocalFetcher:
    """Serve assets from an exported folder on disk."""

    def __init__(self, root: Optional[Path] = None) -> None:
        self.root = root

    def _resolve(self, location: str) -> Path:
        path = Path(location).expanduser()
        if self.root is not None and not path.is_absolute():
            path = self.root / path
        return path

    def _read(self, location: str) -> FetchResponse:
        path = self._resolve(location)
        if not path.is_file():
            return FetchResponse(location=location, status=404, reason="Not Found")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise FetchError(f"Failed to read {path}: {exc}") from exc
        content_type = mimetypes.guess_type(path.name)[0] or ""
        return FetchResponse(
            location=location,
            status=200,
            content=data,
            content_type=content_type,
            reason="OK",
        )

    async def fetch(self, location: str, timeout: float) -> FetchResponse:
        return await asyncio.to_thread(self._read, location)


def build_fetcher(base: str) -> Fetcher:
    """Pick an HTTP or filesystem fetcher for the gallery base location."""
    if base.startswith(("http://", "https://")):
        return HttpFetcher()
    return LocalFetcher()


async def fetch_with_timeout(
    fetcher: Fetcher, location: str, timeout: float
) -> FetchResponse:
    """Fetch ``location`` and abort the attempt once ``timeout`` elapses."""
    try:
        return await asyncio.wait_for(fetcher.fetch(location, timeout), timeout)
    except asyncio.TimeoutError as exc:
        raise FetchTimeout(f"Timed out fetching {location} ({timeout:.1f}s)") from exc


async def load_text(fetcher: Fetcher, location: str, timeout: float) -> Optional[str]:
    """Return the text at ``location`` or None when it is absent."""
    response = await fetch_with_timeout(fetcher, location, timeout)
    if not response.ok:
        return None
    return response.text


def sniff_format(response: FetchResponse) -> Optional[str]:
    """Name the encoding of a fetched image from its bytes, then its Content-Type."""
    kind = guess(response.content)
    if kind is not None and kind.mime.startswith("image/"):
        subtype = kind.extension
    else:
        major, _, subtype = response.content_type.partition(";")[0].strip().partition("/")
        if major.lower() != "image" or not subtype:
            return None
    subtype = subtype.lower()
    return "jpg" if subtype == "jpeg" else subtype


def decode_image(data: bytes) -> Image.Image:
    """Fully decode ``data`` with Pillow or raise :class:`ImageDecodeError`."""
    if not data:
        raise ImageDecodeError("Empty image payload")
    if len(data) > MAX_IMAGE_BYTES:
        raise ImageDecodeError(f"Image larger than {MAX_IMAGE_BYTES} bytes")
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(f"Unable to decode image: {exc}") from exc
    width, height = image.size
    if width <= 0 or height <= 0:
        raise ImageDecodeError("Decoded image has no pixels")
    return image


async def decode_image_async(data: bytes) -> Image.Image:
    return await asyncio.to_thread(decode_image, data)
