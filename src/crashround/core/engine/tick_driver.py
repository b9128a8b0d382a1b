from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from crashround.core.engine.engine import RoundEngine
from crashround.core.events.system import SessionError
from crashround.game.errors import InsufficientFunds

log = structlog.get_logger()


@dataclass(slots=True)
class FrameClock:
    """
    Host frame clock: feeds the engine the time since the last frame it issued.

    pause() drops the baseline, so the first frame after a resume
    contributes no growth for the paused interval.
    """
    engine: RoundEngine
    clock: Callable[[], float] = time.monotonic
    _last: Optional[float] = None

    def frame(self) -> float | None:
        now = self.clock()
        delta = 0.0 if self._last is None else now - self._last
        self._last = now
        return self.engine.tick(delta)

    def pause(self) -> None:
        self._last = None


@dataclass(slots=True)
class TickDriver:
    """
    Plays whole rounds synchronously at a fixed frame delta.

    Used by batch sessions and tests; interactive hosts use FrameClock.
    cashout_at > 0 cashes out manually once the multiplier reaches it.
    """
    engine: RoundEngine
    delta_seconds: float = 1.0 / 60.0
    max_ticks: int = 100_000

    def play_round(
        self,
        *,
        bet: Optional[float] = None,
        auto_cashout: Optional[float] = None,
        cashout_at: float = 0.0,
    ) -> int:
        """
        Start a round and tick it until it resolves. Returns the round's nonce.
        """
        if self.max_ticks <= 0:
            raise ValueError("max_ticks must be > 0")

        engine = self.engine
        started = engine.start(bet=bet, auto_cashout=auto_cashout)
        if started is None:
            raise RuntimeError("a round is already running")

        try:
            for _ in range(self.max_ticks):
                multiplier = engine.tick(self.delta_seconds)
                if engine.status == "ready":
                    return started.nonce
                if cashout_at > 0 and multiplier is not None and multiplier >= cashout_at:
                    engine.cashout()
                    return started.nonce

            raise RuntimeError(f"round {started.nonce} did not resolve within {self.max_ticks} ticks")

        except Exception as exc:
            state = engine.state
            engine.bus.publish(
                SessionError.create(
                    session_id=state.session_id,
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                    sequence=state.next_sequence(),
                )
            )
            log.exception("driver.failed", session_id=state.session_id, nonce=started.nonce)
            raise

    def play(
        self,
        *,
        rounds: int,
        bet: Optional[float] = None,
        auto_cashout: Optional[float] = None,
        cashout_at: float = 0.0,
    ) -> int:
        """
        Play up to `rounds` rounds; stops early when the balance cannot cover
        the bet. Returns the number of rounds played.
        """
        if rounds <= 0:
            raise ValueError("rounds must be > 0")

        played = 0
        for _ in range(rounds):
            try:
                self.play_round(bet=bet, auto_cashout=auto_cashout, cashout_at=cashout_at)
            except InsufficientFunds as exc:
                log.info("driver.out_of_funds", balance=self.engine.balance, reason=exc.reason, played=played)
                break
            played += 1
        return played
