from __future__ import annotations

import asyncio
import logging

from bs4 import BeautifulSoup

from conftest import FakeFetcher, make_config
from pagefolio import dom
from pagefolio.animations import (
    HIDDEN_PERMANENT_CLASS,
    AnimationPhase,
    AnimationTimingEngine,
    IconLibrary,
    svg_aspect_ratio,
)
from pagefolio.models import AnimationConfig, PageRecord, TriggerType
from pagefolio.state import GalleryState
from pagefolio.viewport import VisibilityHub

SPARK = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 20 10">'
    '<circle cx="5" cy="5" r="4"/></svg>'
)


class Harness:
    def __init__(self, clock, fetcher=None) -> None:
        self.config = make_config()
        self.fetcher = fetcher or FakeFetcher({"site/assets/icons/spark.svg": SPARK})
        self.soup = dom.new_document()
        self.state = GalleryState()
        self.hub = VisibilityHub()
        self.clock = clock
        self.engine = AnimationTimingEngine(
            self.state,
            self.soup,
            self.config.animations,
            clock,
            self.hub,
            IconLibrary(self.config, self.fetcher, self.soup),
        )
        slot = dom.create_page_slot(self.soup, 1)
        slot.append(
            dom.create_zoom_structure(self.soup, dom.create_image(self.soup, "p.png", "p"))
        )
        dom.container(self.soup).append(slot)
        self.record = PageRecord(page_number=1, dom_handle=slot)
        self.state.records[1] = self.record

    def attach(self, *configs):
        return asyncio.run(self.engine.attach(self.record, list(configs)))


def _spark(duration=2000, delay=500, trigger=TriggerType.VISIBLE) -> AnimationConfig:
    return AnimationConfig(1, "spark.svg", 50, 40, 10, duration, delay, trigger)


def test_timeline_runs_delay_pulse_exit_and_removal(clock):
    harness = Harness(clock)
    harness.hub.publish(1, True)
    [instance] = harness.attach(_spark())

    style = dom.get_style(instance.element)
    assert (style["left"], style["top"], style["width"], style["height"]) == (
        "45%",
        "37.5%",
        "10%",
        "5%",
    )
    assert dom.has_class(instance.element, "animation-spark")
    assert instance.phase is AnimationPhase.DELAYED

    clock.advance(499)
    assert instance.phase is AnimationPhase.DELAYED
    clock.advance(1)
    assert instance.phase is AnimationPhase.PULSING
    assert dom.get_style(instance.element)["visibility"] == "visible"
    assert dom.has_class(instance.element, "pulsing")

    clock.advance(1399)
    assert instance.phase is AnimationPhase.PULSING
    clock.advance(1)
    assert instance.phase is AnimationPhase.EXITING
    assert dom.has_class(instance.element, "exiting")
    assert not dom.has_class(instance.element, "pulsing")

    clock.advance(600)
    assert instance.phase is AnimationPhase.REMOVED
    assert instance.element.parent is None
    assert harness.state.page_animations[1] == []
    assert instance.history == [
        AnimationPhase.DELAYED,
        AnimationPhase.VISIBLE,
        AnimationPhase.PULSING,
        AnimationPhase.EXITING,
        AnimationPhase.REMOVED,
    ]


def test_short_duration_skips_pulse_and_warns(clock, caplog):
    harness = Harness(clock)
    harness.hub.publish(1, True)
    with caplog.at_level(logging.WARNING, logger="pagefolio"):
        [instance] = harness.attach(_spark(duration=500, delay=0))
    assert "less than minimum" in caplog.text
    assert instance.phase is AnimationPhase.VISIBLE

    clock.advance(0)
    assert instance.phase is AnimationPhase.EXITING
    clock.advance(600)
    assert AnimationPhase.PULSING not in instance.history
    assert instance.phase is AnimationPhase.REMOVED


def test_visible_trigger_waits_until_page_is_in_view(clock):
    harness = Harness(clock)
    [instance] = harness.attach(_spark())
    clock.advance(5000)
    assert instance.phase is AnimationPhase.CREATED

    harness.hub.publish(1, True)
    assert instance.phase is AnimationPhase.DELAYED
    assert harness.engine.trigger(1, TriggerType.VISIBLE) == 0

    harness.hub.publish(1, False)
    harness.hub.publish(1, True)
    assert instance.history.count(AnimationPhase.DELAYED) == 1


def test_hover_trigger_requires_the_page_to_be_visible(clock):
    harness = Harness(clock)
    [instance] = harness.attach(_spark(trigger=TriggerType.HOVER))

    assert harness.engine.pointer_enter(1) == 0
    harness.hub.publish(1, True)
    assert instance.phase is AnimationPhase.CREATED
    assert harness.engine.pointer_enter(1) == 1
    assert harness.engine.pointer_enter(1) == 0
    assert instance.phase is AnimationPhase.DELAYED


def test_hide_fades_out_once_and_is_permanent(clock):
    harness = Harness(clock)
    harness.hub.publish(1, True)
    [instance] = harness.attach(_spark())
    clock.advance(600)
    assert instance.phase is AnimationPhase.PULSING

    assert harness.engine.hide_page_animation(1, "animation-spark") == 1
    assert harness.engine.hide_page_animation(1, "animation-spark") == 0
    assert dom.get_style(instance.element)["opacity"] == "0"
    assert instance.phase is AnimationPhase.HIDING

    clock.advance(1500)
    assert instance.phase is AnimationPhase.HIDDEN_PERMANENT
    assert dom.has_class(instance.element, HIDDEN_PERMANENT_CLASS)
    clock.advance(10000)
    assert instance.phase is AnimationPhase.HIDDEN_PERMANENT
    assert instance.history.count(AnimationPhase.HIDING) == 1
    assert AnimationPhase.EXITING not in instance.history


def test_hide_on_unknown_page_is_ignored(clock):
    harness = Harness(clock)
    assert harness.engine.hide_page_animation(7, "animation-spark") == 0


def test_missing_icon_skips_the_animation(clock, caplog):
    harness = Harness(clock, fetcher=FakeFetcher())
    with caplog.at_level(logging.WARNING, logger="pagefolio"):
        assert harness.attach(_spark()) == []
    assert "Failed to load icon" in caplog.text
    assert 1 not in harness.state.page_animations


def test_companion_stylesheet_is_injected_once(clock):
    fetcher = FakeFetcher(
        {
            "site/assets/icons/spark.svg": SPARK,
            "site/assets/icons/spark.css": ".animation-spark { color: red; }",
        }
    )
    harness = Harness(clock, fetcher=fetcher)
    instances = harness.attach(_spark(), _spark(delay=0))

    assert len(instances) == 2
    styles = harness.soup.head.find_all("style", attrs={"data-animation-css": "spark"})
    assert len(styles) == 1
    assert fetcher.requests.count("site/assets/icons/spark.css") == 1
    assert fetcher.requests.count("site/assets/icons/spark.svg") == 1


def test_svg_aspect_ratio():
    svg = BeautifulSoup(SPARK, "html.parser").find("svg")
    assert svg_aspect_ratio(svg) == 2
    assert svg_aspect_ratio(BeautifulSoup("<svg></svg>", "html.parser").find("svg")) is None
    bad = BeautifulSoup('<svg viewBox="0 0 0 10"></svg>', "html.parser").find("svg")
    assert svg_aspect_ratio(bad) is None


def test_hidden_animation_never_starts(clock):
    harness = Harness(clock)
    [instance] = harness.attach(_spark())
    assert harness.engine.hide(instance)
    clock.advance(1500)

    harness.hub.publish(1, True)
    clock.advance(5000)
    assert instance.phase is AnimationPhase.HIDDEN_PERMANENT
    assert AnimationPhase.DELAYED not in instance.history


def test_hover_trigger_keeps_the_visibility_subscription(clock):
    harness = Harness(clock)
    [hovered, watched] = harness.attach(
        _spark(trigger=TriggerType.HOVER), _spark(trigger=TriggerType.VISIBLE)
    )
    assert harness.hub.subscriber_count(1) == 1

    assert harness.engine.trigger(1, TriggerType.HOVER) == 1
    assert hovered.phase is AnimationPhase.DELAYED
    assert harness.hub.subscriber_count(1) == 1

    harness.hub.publish(1, True)
    assert watched.phase is AnimationPhase.DELAYED
    assert harness.hub.subscriber_count(1) == 0
