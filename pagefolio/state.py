"""Explicit application state shared by the pipeline and overlay engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple

from .models import AnimationConfig, HotspotConfig, ImageCandidate, PageRecord, TriggerType
from .sync import CompletionRegistry

if TYPE_CHECKING:
    from .animations import AnimationInstance
    from .hotspots import HotspotElement


@dataclass
class GalleryState:
    """Owned by the :class:`~pagefolio.gallery.Gallery` and passed to each component.

    Pipeline fields (records, in-flight set, completion flags, waiters) are
    written by the render pipeline only; overlay fields are written by the
    engine that owns them.
    """

    records: Dict[int, PageRecord] = field(default_factory=dict)
    loaded_images: List[ImageCandidate] = field(default_factory=list)
    pages_in_flight: Set[int] = field(default_factory=set)
    all_pages_loaded: bool = False
    max_loaded_page_number: int = 0
    page_waiters: CompletionRegistry[int, Optional[PageRecord]] = field(
        default_factory=CompletionRegistry
    )

    hotspot_configs: List[HotspotConfig] = field(default_factory=list)
    hotspot_configs_by_page: Dict[int, List[HotspotConfig]] = field(default_factory=dict)
    hotspot_elements: List["HotspotElement"] = field(default_factory=list)
    animated_hotspots: Set[int] = field(default_factory=set)

    animation_configs_by_page: Dict[int, List[AnimationConfig]] = field(default_factory=dict)
    page_animations: Dict[int, List["AnimationInstance"]] = field(default_factory=dict)
    triggered_pages: Set[Tuple[TriggerType, int]] = field(default_factory=set)

    def update_max_loaded_page_number(self, page_number: int) -> None:
        self.max_loaded_page_number = max(self.max_loaded_page_number, page_number)

    def rendered_pages(self) -> List[PageRecord]:
        return [self.records[number] for number in sorted(self.records)]

    def reset(self) -> None:
        self.records.clear()
        self.loaded_images.clear()
        self.pages_in_flight.clear()
        self.all_pages_loaded = False
        self.max_loaded_page_number = 0
        self.hotspot_elements.clear()
        self.animated_hotspots.clear()
        self.page_animations.clear()
        self.triggered_pages.clear()
