from __future__ import annotations

import logging

from pagefolio.observability import DebugTracker, emit


class _BrokenSink:
    def emit(self, event, **fields):
        raise RuntimeError("sink down")


def test_tracker_flags_duplicate_renders(caplog):
    tracker = DebugTracker()
    with caplog.at_level(logging.WARNING, logger="pagefolio.debug"):
        for page_number in (1, 2, 1):
            emit(tracker, "render.started", page_number=page_number)
            emit(tracker, "render.finished", page_number=page_number, state="ready")

    assert tracker.duplicate_renders() == [1]
    assert "Page 1 rendered more than once" in caplog.text
    summary = tracker.summary()
    assert "Duplicate renders: 1" in summary
    assert "call #3" in summary


def test_tracker_counts_requests_and_init_calls(caplog):
    tracker = DebugTracker()
    emit(tracker, "fetch", location="a.png", status=404, outcome="missing", elapsed_ms=1.0)
    emit(tracker, "fetch", location="b.png", status=200, outcome="ok", elapsed_ms=2.0)
    with caplog.at_level(logging.WARNING, logger="pagefolio.debug"):
        emit(tracker, "init", name="pipeline.initialize")
        emit(tracker, "init", name="pipeline.initialize")

    assert [r.outcome for r in tracker.requests] == ["missing", "ok"]
    assert "called 2 times" in caplog.text
    summary = tracker.summary()
    assert "Requests: 2 missing=1 ok=1" in summary
    assert "Init pipeline.initialize: 2" in summary


def test_emit_without_sink_or_with_failing_sink_is_harmless(caplog):
    emit(None, "render.started", page_number=1)
    with caplog.at_level(logging.ERROR, logger="pagefolio.debug"):
        emit(_BrokenSink(), "render.started", page_number=1)
    assert "Event sink failed" in caplog.text
