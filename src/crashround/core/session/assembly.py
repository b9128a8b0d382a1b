from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

import structlog

from crashround.core.engine.engine import RoundEngine
from crashround.core.engine.lifecycle import SessionLifecycle
from crashround.core.engine.router import RouterWiring, wire_components
from crashround.core.engine.tick_driver import TickDriver
from crashround.core.events.base import Event
from crashround.core.events.bus import EventBus
from crashround.core.session.artifacts import SessionArtifacts, artifacts_for
from crashround.core.session.persist import persist_outcomes
from crashround.core.session.spec import SessionSpec
from crashround.evaluation.recorder import RoundRecorderComponent
from crashround.game.sampler import CrashPointSampler
from crashround.storage.jsonl import JsonlEventStore

log = structlog.get_logger()


@dataclass(slots=True)
class EventLogComponent:
    """
    Append-only persistence of every session/round event to events.jsonl.
    """
    store: JsonlEventStore

    event_types: tuple[str, ...] = (
        "session.started",
        "session.stopped",
        "session.error",
        "round.start",
        "round.cashout",
        "round.crash",
        "round.end",
    )

    def subscriptions(self) -> Sequence[tuple[str, callable]]:
        return [(et, self._on_event) for et in self.event_types]

    def _on_event(self, e: Event) -> None:
        self.store.append(e)


@dataclass(frozen=True, slots=True)
class SessionHandle:
    """
    A wired session living in this process.
    """
    session_id: str
    artifacts: SessionArtifacts
    bus: EventBus
    engine: RoundEngine
    lifecycle: SessionLifecycle
    driver: TickDriver
    wiring: RouterWiring
    components: tuple[object, ...]
    recorder: RoundRecorderComponent
    event_store: JsonlEventStore

    def stop(self) -> dict:
        """
        Close the session and write rounds.parquet + summary.json.
        """
        self.lifecycle.stop()
        try:
            return persist_outcomes(
                art=self.artifacts,
                series=self.recorder.series,
                extra={"seed": self.engine.seed, "balance": self.engine.balance},
            )
        finally:
            self.event_store.close()


def build_session(
    *,
    sessions_dir: Path,
    session_id: str,
    spec: SessionSpec,
    sampler: Optional[CrashPointSampler] = None,
    seed_generated: bool = False,
    extra_components: Iterable[object] = (),
) -> SessionHandle:
    art = artifacts_for(sessions_dir=sessions_dir, session_id=session_id)
    art.ensure_dirs()
    art.events_jsonl.touch(exist_ok=True)

    bus = EventBus()
    engine = RoundEngine.from_spec(
        spec, session_id=session_id, bus=bus, sampler=sampler, seed_generated=seed_generated
    )
    lifecycle = SessionLifecycle(engine=engine)
    driver = TickDriver(
        engine=engine,
        delta_seconds=spec.driver.delta_seconds,
        max_ticks=spec.driver.max_ticks,
    )

    event_store = JsonlEventStore(path=art.events_jsonl, session_id=session_id)
    eventlog = EventLogComponent(store=event_store)
    recorder = RoundRecorderComponent()

    # event log is wired first
    components: list[object] = [eventlog, recorder]
    components.extend(extra_components)

    wiring = wire_components(bus=bus, components=components)

    log.info(
        "session.assembled",
        session_id=session_id,
        components=[type(c).__name__ for c in components],
        artifacts_dir=str(art.session_dir),
    )

    return SessionHandle(
        session_id=session_id,
        artifacts=art,
        bus=bus,
        engine=engine,
        lifecycle=lifecycle,
        driver=driver,
        wiring=wiring,
        components=tuple(components),
        recorder=recorder,
        event_store=event_store,
    )
