from __future__ import annotations

from math import isfinite
from typing import TYPE_CHECKING, Optional

import structlog

from crashround.core.engine.state import EngineState, RoundStatus
from crashround.core.events.bus import EventBus
from crashround.core.events.rounds import CashedOut, Crashed, RoundEnded, RoundStarted
from crashround.game.errors import InvalidBet, InvalidOperation
from crashround.game.fingerprint import round_hash
from crashround.game.ledger import Bet, HistoryEntry, SettlementLedger
from crashround.game.rng import SeededRNG
from crashround.game.sampler import CrashPointSampler

if TYPE_CHECKING:
    from crashround.core.session.spec import SessionSpec

log = structlog.get_logger()

GROWTH_RATE = 0.9
MIN_TICK_SECONDS = 0.001
MAX_TICK_SECONDS = 0.05


class RoundEngine:
    """
    Crash round state machine: ready -> running -> (resolve) -> ready.

    The engine has no timer. The host drives time with tick(delta_seconds)
    and receives lifecycle events through the EventBus, in this order per
    round: round.start, then round.cashout or round.crash, then round.end.

    Auto-cashout resolves at the threshold multiplier, not at the
    (possibly higher) post-growth multiplier.
    """

    def __init__(
        self,
        *,
        session_id: str,
        bus: EventBus,
        seed: Optional[str] = None,
        start_balance: float = 1000.0,
        start_bet: float = 10.0,
        auto_cash: float = 0.0,
        history_limit: int = 20,
        min_tick_seconds: float = MIN_TICK_SECONDS,
        max_tick_seconds: float = MAX_TICK_SECONDS,
        sampler: Optional[CrashPointSampler] = None,
        seed_generated: bool = False,
    ) -> None:
        if not (0 < min_tick_seconds <= max_tick_seconds):
            raise ValueError("tick bounds must satisfy 0 < min_tick_seconds <= max_tick_seconds")

        self._bus = bus
        self._state = EngineState(session_id=session_id)
        self._rng, generated = SeededRNG.from_optional_seed(seed)
        # seed may have been generated upstream (SessionManager) and passed in
        self._seed_generated = generated or seed_generated
        self._sampler = sampler if sampler is not None else CrashPointSampler()
        self._ledger = SettlementLedger(balance=start_balance, history_limit=history_limit)

        self._default_bet = start_bet
        self._default_auto_cash = auto_cash
        self._min_tick = min_tick_seconds
        self._max_tick = max_tick_seconds

    @classmethod
    def from_spec(
        cls,
        spec: "SessionSpec",
        *,
        session_id: str,
        bus: EventBus,
        sampler: Optional[CrashPointSampler] = None,
        seed_generated: bool = False,
    ) -> "RoundEngine":
        return cls(
            session_id=session_id,
            bus=bus,
            seed=spec.client_seed,
            start_balance=spec.start_balance,
            start_bet=spec.start_bet,
            auto_cash=spec.auto_cash,
            history_limit=spec.history_limit,
            min_tick_seconds=spec.min_tick_seconds,
            max_tick_seconds=spec.max_tick_seconds,
            sampler=sampler,
            seed_generated=seed_generated,
        )

    # --- Views ------------------------------------------------------------

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def ledger(self) -> SettlementLedger:
        return self._ledger

    @property
    def seed(self) -> str:
        return self._rng.seed

    @property
    def seed_generated(self) -> bool:
        return self._seed_generated

    @property
    def status(self) -> RoundStatus:
        return self._state.status

    @property
    def nonce(self) -> int:
        return self._state.nonce

    @property
    def multiplier(self) -> float:
        return self._state.multiplier

    @property
    def crash_point(self) -> float:
        return self._state.crash_point

    @property
    def balance(self) -> float:
        return self._ledger.balance

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return self._ledger.history

    # --- Operations -------------------------------------------------------

    def start(self, bet: Optional[float] = None, auto_cashout: Optional[float] = None) -> RoundStarted | None:
        """
        Accept a bet and open a round.

        Returns None (and changes nothing) if a round is already running.
        InvalidBet / InsufficientFunds propagate with no state change.
        """
        st = self._state
        if st.is_running:
            log.info("round.start_ignored", nonce=st.nonce, reason="already_running")
            return None

        amount = self._default_bet if bet is None else float(bet)
        threshold = self._default_auto_cash if auto_cashout is None else float(auto_cashout)
        self._check_auto_cashout(threshold)

        self._ledger.apply_bet(amount)

        nonce = st.next_nonce()
        crash_point = self._sampler.sample(self._rng)

        st.bet = Bet(amount=amount, auto_cashout=threshold)
        st.crash_point = crash_point
        st.multiplier = 1.0
        st.ticks = 0
        st.round_hash = round_hash(seed=self._rng.seed, nonce=nonce, draw=self._rng.draw())
        st.status = "running"

        event = RoundStarted.create(
            nonce=nonce,
            crash_point=crash_point,
            round_hash=st.round_hash,
            bet=amount,
            auto_cashout=threshold,
            sequence=st.next_sequence(),
        )
        self._bus.publish(event)

        log.info(
            "round.started",
            nonce=nonce,
            bet=amount,
            auto_cashout=threshold,
            round_hash=st.round_hash,
            balance=self._ledger.balance,
        )
        return event

    def tick(self, delta_seconds: float) -> float | None:
        """
        Advance the running round by delta_seconds (clamped to the tick bounds).

        Returns the multiplier after this tick, or None when no round is running.
        """
        st = self._state
        if not st.is_running:
            return None

        if not isfinite(delta_seconds):
            raise ValueError("delta_seconds must be finite")

        dt = min(max(delta_seconds, self._min_tick), self._max_tick)
        st.ticks += 1

        st.multiplier = min(st.multiplier * (1.0 + dt * GROWTH_RATE), st.crash_point)
        multiplier = st.multiplier

        assert st.bet is not None
        if st.bet.auto_enabled and multiplier >= st.bet.auto_cashout:
            self._resolve_win(multiplier=st.bet.auto_cashout, auto=True)
        elif multiplier >= st.crash_point:
            self._resolve_crash()

        return multiplier

    def cashout(self) -> CashedOut:
        """
        Manual cashout at the current multiplier.

        Raises InvalidOperation (nothing mutated) when no round is running.
        """
        st = self._state
        if not st.is_running:
            raise InvalidOperation("no round is running", reason="cashout_without_round")

        return self._resolve_win(multiplier=st.multiplier, auto=False)

    # --- Resolution -------------------------------------------------------

    def _check_auto_cashout(self, threshold: float) -> None:
        if not isfinite(threshold) or threshold < 0:
            raise InvalidBet(f"auto_cashout must be >= 0, got {threshold!r}", reason="auto_cashout_invalid")
        if 0 < threshold < 1:
            raise InvalidBet(
                f"auto_cashout must be 0 (disabled) or >= 1, got {threshold!r}",
                reason="auto_cashout_below_one",
            )

    def _resolve_win(self, *, multiplier: float, auto: bool) -> CashedOut:
        st = self._state
        assert st.bet is not None

        payout = self._ledger.apply_payout(st.bet.amount, multiplier)
        self._ledger.record_history(HistoryEntry.win(multiplier))

        cashed = CashedOut.create(
            nonce=st.nonce,
            multiplier=multiplier,
            payout=payout,
            auto=auto,
            sequence=st.next_sequence(),
        )
        ended = self._settle(outcome="win", multiplier=multiplier, payout=payout)

        log.info(
            "round.cashed_out",
            nonce=st.nonce,
            multiplier=multiplier,
            payout=payout,
            auto=auto,
            ticks=st.ticks,
        )
        self._bus.publish(cashed, ended)
        return cashed

    def _resolve_crash(self) -> None:
        st = self._state
        self._ledger.record_history(HistoryEntry.crash(st.crash_point))

        crashed = Crashed.create(
            nonce=st.nonce,
            crash_point=st.crash_point,
            sequence=st.next_sequence(),
        )
        ended = self._settle(outcome="crash", multiplier=st.crash_point, payout=None)

        log.info("round.crashed", nonce=st.nonce, crash_point=st.crash_point, ticks=st.ticks)
        self._bus.publish(crashed, ended)

    def _settle(self, *, outcome: str, multiplier: float, payout: float | None) -> RoundEnded:
        """
        Close the round and build its round.end event.

        Runs before anything is published: a subscriber that raises sees a
        round that is already settled and cannot be resolved again.
        """
        st = self._state
        ended = RoundEnded.create(
            nonce=st.nonce,
            outcome=outcome,
            multiplier=multiplier,
            payout=payout,
            balance=self._ledger.balance,
            sequence=st.next_sequence(),
        )
        st.status = "ready"
        return ended
