from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from pagefolio.config import GalleryConfig
from pagefolio.models import InvalidTransition, PageImage, PageRecord, RenderState
from pagefolio.utils import (
    asset_location,
    extract_youtube_id,
    format_number,
    icon_class_name,
    join_location,
    pad_page_number,
)


def _record() -> PageRecord:
    return PageRecord(page_number=1, dom_handle=BeautifulSoup("", "html.parser").new_tag("div"))


def test_page_record_moves_forward_only():
    record = _record()
    assert not record.settled
    with pytest.raises(InvalidTransition):
        record.transition(RenderState.READY)
    record.transition(RenderState.LOADING)
    record.transition(RenderState.FAILED)
    assert record.settled
    with pytest.raises(InvalidTransition):
        record.transition(RenderState.READY)


def test_page_image_runs_decode_callbacks_once():
    image = PageImage(BeautifulSoup("", "html.parser").new_tag("img"))
    calls = []
    image.when_decoded(lambda: calls.append("a"))
    assert not image.decoded

    image.mark_decoded(640, 480)
    image.when_decoded(lambda: calls.append("b"))
    image.mark_decoded(640, 480)
    assert calls == ["a", "b"]


def test_asset_location_pads_page_numbers():
    config = GalleryConfig(base="https://example.com/portfolio/")
    assert asset_location(config, 7, "webp") == (
        "https://example.com/portfolio/images/webp/page_07.webp"
    )
    assert pad_page_number(123, 2) == "123"
    assert join_location("", "images", "/png/") == "images/png"


def test_config_normalizes_and_validates_formats():
    config = GalleryConfig(formats=(".WEBP", "png"))
    assert config.formats == ("webp", "png")
    with pytest.raises(ValueError):
        GalleryConfig(formats=())
    with pytest.raises(ValueError):
        GalleryConfig(max_consecutive_failures=0)


def test_identifier_helpers():
    assert extract_youtube_id("https://www.youtube.com/embed/dQw4w9WgXcQ?rel=0") == "dQw4w9WgXcQ"
    assert extract_youtube_id("short") is None
    assert icon_class_name("icons/Zoom Hint.svg") == "animation-Zoom-Hint"
    assert icon_class_name("animation-spark.svg") == "animation-spark"
    assert format_number(12.5000001) == "12.5"
    assert format_number(-0.0000001) == "0"
