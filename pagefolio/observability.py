"""Optional event sink for tracing the discovery and render pipeline."""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger("pagefolio.debug")


class EventSink(Protocol):
    def emit(self, event: str, **fields: Any) -> None: ...


def emit(sink: Optional[EventSink], event: str, **fields: Any) -> None:
    """Forward an event to ``sink`` if one is configured."""
    if sink is None:
        return
    try:
        sink.emit(event, **fields)
    except Exception:  # pylint: disable=broad-except
        logger.exception("Event sink failed while handling %s", event)


@dataclass
class RequestRecord:
    location: str
    status: Optional[int]
    outcome: str
    elapsed_ms: float
    sniffed: Optional[str] = None


@dataclass
class RenderRecord:
    page_number: int
    call_id: int
    started_at: float
    finished_at: Optional[float] = None
    state: Optional[str] = None

    @property
    def elapsed_ms(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at) * 1000


@dataclass
class DebugTracker:
    """Collects pipeline events and summarises them on demand."""

    renders: List[RenderRecord] = field(default_factory=list)
    requests: List[RequestRecord] = field(default_factory=list)
    init_calls: Counter = field(default_factory=Counter)
    events: Counter = field(default_factory=Counter)
    _open_renders: Dict[int, RenderRecord] = field(default_factory=dict)

    def emit(self, event: str, **fields: Any) -> None:
        self.events[event] += 1
        handler = getattr(self, f"_on_{event.replace('.', '_')}", None)
        if handler is not None:
            handler(**fields)

    def _on_render_started(self, page_number: int, **_: Any) -> None:
        if any(r.page_number == page_number for r in self.renders):
            logger.warning("Page %d rendered more than once", page_number)
        record = RenderRecord(
            page_number=page_number,
            call_id=len(self.renders) + 1,
            started_at=time.perf_counter(),
        )
        self.renders.append(record)
        self._open_renders[page_number] = record

    def _on_render_finished(self, page_number: int, state: str, **_: Any) -> None:
        record = self._open_renders.pop(page_number, None)
        if record is None:
            logger.warning("Render of page %d finished without a start", page_number)
            return
        record.finished_at = time.perf_counter()
        record.state = state

    def _on_fetch(
        self,
        location: str,
        outcome: str,
        elapsed_ms: float,
        status: Optional[int] = None,
        sniffed: Optional[str] = None,
        **_: Any,
    ) -> None:
        self.requests.append(
            RequestRecord(location, status, outcome, elapsed_ms, sniffed)
        )

    def _on_init(self, name: str, **_: Any) -> None:
        self.init_calls[name] += 1
        if self.init_calls[name] > 1:
            logger.warning("%s called %d times", name, self.init_calls[name])

    def duplicate_renders(self) -> List[int]:
        counts = Counter(r.page_number for r in self.renders)
        return sorted(page for page, count in counts.items() if count > 1)

    def summary(self) -> str:
        lines = ["Page renders:"]
        for record in sorted(self.renders, key=lambda r: r.page_number):
            elapsed = record.elapsed_ms
            timing = f"{elapsed:.1f}ms" if elapsed is not None else "unfinished"
            lines.append(
                f"  page {record.page_number:>3} call #{record.call_id} "
                f"{record.state or 'in-flight'} ({timing})"
            )
        duplicates = self.duplicate_renders()
        if duplicates:
            lines.append(f"Duplicate renders: {', '.join(map(str, duplicates))}")
        outcomes = Counter(r.outcome for r in self.requests)
        lines.append(
            f"Requests: {len(self.requests)} "
            + " ".join(f"{name}={count}" for name, count in sorted(outcomes.items()))
        )
        for name, count in sorted(self.init_calls.items()):
            lines.append(f"Init {name}: {count}")
        return "\n".join(lines)
