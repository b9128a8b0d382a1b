from __future__ import annotations

import pytest

from crashround.core.engine.router import wire_components
from crashround.core.events.base import Event
from crashround.core.events.bus import EventBus
from crashround.core.events.rounds import Crashed, RoundEnded


class Recorder:
    def __init__(self, name: str, log: list[str]) -> None:
        self.name = name
        self.log = log

    def subscriptions(self):
        return [("round.crash", self.on_event), ("round.end", self.on_event)]

    def on_event(self, e: Event) -> None:
        self.log.append(f"{self.name}:{e.event_type}")


def _crash_pair() -> tuple[Crashed, RoundEnded]:
    crashed = Crashed.create(nonce=1, crash_point=1.5, sequence=1)
    ended = RoundEnded.create(nonce=1, outcome="crash", multiplier=1.5, balance=990.0, payout=None, sequence=2)
    return crashed, ended


def test_each_event_reaches_every_component_before_the_next() -> None:
    bus = EventBus()
    seen: list[str] = []
    wire_components(bus=bus, components=[Recorder("first", seen), Recorder("second", seen)])

    bus.publish(*_crash_pair())

    assert seen == [
        "first:round.crash",
        "second:round.crash",
        "first:round.end",
        "second:round.end",
    ]


def test_raising_handler_stops_delivery() -> None:
    bus = EventBus()
    seen: list[str] = []

    def boom(e: Event) -> None:
        raise RuntimeError("boom")

    bus.subscribe(event_type="round.crash", handler=boom)
    wire_components(bus=bus, components=[Recorder("late", seen)])

    with pytest.raises(RuntimeError):
        bus.publish(*_crash_pair())

    assert seen == []


def test_same_handler_twice_on_one_event_type_is_rejected() -> None:
    bus = EventBus()
    rec = Recorder("dup", [])
    wire_components(bus=bus, components=[rec])

    with pytest.raises(ValueError):
        wire_components(bus=bus, components=[rec])


def test_wiring_records_component_and_handler_names() -> None:
    wiring = wire_components(bus=EventBus(), components=[Recorder("r", [])])

    assert wiring.as_records() == [
        {"component": "Recorder", "event_type": "round.crash", "handler": "on_event"},
        {"component": "Recorder", "event_type": "round.end", "handler": "on_event"},
    ]
