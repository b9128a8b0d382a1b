from __future__ import annotations

import pytest
import structlog

from crashround.core.engine.engine import RoundEngine
from crashround.core.engine.lifecycle import SessionLifecycle
from crashround.core.engine.router import wire_components
from crashround.core.events.base import Event
from crashround.core.events.bus import EventBus
from crashround.core.events.system import SessionStarted, SessionStopped


class Collector:
    def __init__(self) -> None:
        self.events: list[Event] = []

    def subscriptions(self):
        return [
            ("session.started", self.events.append),
            ("session.stopped", self.events.append),
        ]


def _wired(seed: str | None = "lifecycle") -> tuple[RoundEngine, SessionLifecycle, Collector]:
    bus = EventBus()
    col = Collector()
    wire_components(bus=bus, components=[col])
    engine = RoundEngine(session_id="test", bus=bus, seed=seed)
    return engine, SessionLifecycle(engine=engine), col


def test_start_and_stop_publish_session_events() -> None:
    engine, lifecycle, col = _wired()

    lifecycle.start()
    assert lifecycle.is_open
    lifecycle.stop()
    assert not lifecycle.is_open

    started, stopped = col.events
    assert isinstance(started, SessionStarted)
    assert started.seed == "lifecycle"
    assert started.seed_generated is False
    assert isinstance(stopped, SessionStopped)
    assert stopped.abandoned_nonce is None
    assert stopped.balance == 1000


def test_stop_with_round_in_flight_abandons_it() -> None:
    engine, lifecycle, col = _wired()
    lifecycle.start()
    engine.start(10)

    lifecycle.stop()

    stopped = col.events[-1]
    assert isinstance(stopped, SessionStopped)
    assert stopped.abandoned_nonce == 1
    assert stopped.balance == 990
    assert engine.status == "running"


def test_generated_seed_is_reported() -> None:
    engine, lifecycle, col = _wired(seed=None)
    lifecycle.start()

    started = col.events[0]
    assert started.seed_generated is True
    assert started.seed == engine.seed


def test_double_start_and_stop_are_rejected() -> None:
    _, lifecycle, _ = _wired()

    with pytest.raises(RuntimeError):
        lifecycle.stop()

    lifecycle.start()
    with pytest.raises(RuntimeError):
        lifecycle.start()


def test_log_context_is_bound_while_open() -> None:
    _, lifecycle, _ = _wired()

    lifecycle.start()
    assert structlog.contextvars.get_contextvars()["session_id"] == "test"

    lifecycle.stop()
    assert "session_id" not in structlog.contextvars.get_contextvars()
