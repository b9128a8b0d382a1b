from __future__ import annotations

import structlog

from crashround.core.engine.engine import RoundEngine
from crashround.core.events.system import SessionStarted, SessionStopped
from crashround.core.logging.setup import bind_context, clear_context

log = structlog.get_logger()


class SessionLifecycle:
    """
    Host-level open/close of a session around one RoundEngine.

    The engine has no notion of a session. Stopping only means the host
    stops calling tick(); a round still running at stop() is abandoned
    as-is (never resolved, bet stays deducted) and reported as such.
    """

    def __init__(self, *, engine: RoundEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> RoundEngine:
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine.state.is_open

    def start(self) -> None:
        state = self._engine.state
        if state.is_open:
            raise RuntimeError("session already open")

        bind_context(session_id=state.session_id, component="engine")

        state.is_open = True

        self._engine.bus.publish(
            SessionStarted.create(
                session_id=state.session_id,
                seed=self._engine.seed,
                seed_generated=self._engine.seed_generated,
                sequence=state.next_sequence(),
            )
        )

        log.info(
            "session.started",
            session_id=state.session_id,
            seed=self._engine.seed,
            seed_generated=self._engine.seed_generated,
            balance=self._engine.balance,
        )

    def stop(self) -> None:
        state = self._engine.state
        if not state.is_open:
            raise RuntimeError("session not open")

        abandoned = state.nonce if state.is_running else None
        if abandoned is not None:
            log.warning(
                "session.round_abandoned",
                session_id=state.session_id,
                nonce=abandoned,
                bet=state.bet.amount if state.bet is not None else None,
            )

        state.is_open = False

        self._engine.bus.publish(
            SessionStopped.create(
                session_id=state.session_id,
                rounds_played=state.nonce,
                balance=self._engine.balance,
                abandoned_nonce=abandoned,
                sequence=state.next_sequence(),
            )
        )

        log.info("session.stopped", session_id=state.session_id, balance=self._engine.balance)
        clear_context()
