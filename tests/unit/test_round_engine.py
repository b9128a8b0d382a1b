from __future__ import annotations

import math
import re
from dataclasses import dataclass

import pytest

from crashround.core.engine.engine import RoundEngine
from crashround.core.engine.router import wire_components
from crashround.core.events.base import Event
from crashround.core.events.bus import EventBus
from crashround.core.events.rounds import CashedOut, Crashed, RoundEnded, RoundStarted
from crashround.game.errors import InsufficientFunds, InvalidBet, InvalidOperation
from crashround.game.ledger import HistoryEntry


@dataclass(frozen=True)
class FixedCrashPoint:
    """
    Sampler stub: every round crashes at the same point.
    """
    crash_point: float

    def sample(self, rng) -> float:
        rng.draw()
        return self.crash_point


class Collector:
    def __init__(self) -> None:
        self.events: list[Event] = []

    def subscriptions(self):
        return [
            ("round.start", self._on_event),
            ("round.cashout", self._on_event),
            ("round.crash", self._on_event),
            ("round.end", self._on_event),
        ]

    def _on_event(self, e: Event) -> None:
        self.events.append(e)

    def types(self) -> list[str]:
        return [e.event_type for e in self.events]

    def of(self, cls: type) -> list:
        return [e for e in self.events if isinstance(e, cls)]


def _engine(*, crash_point: float | None = None, seed: str = "unit-seed", **kwargs) -> tuple[RoundEngine, Collector]:
    bus = EventBus()
    col = Collector()
    wire_components(bus=bus, components=[col])
    sampler = FixedCrashPoint(crash_point) if crash_point is not None else None
    engine = RoundEngine(session_id="test", bus=bus, seed=seed, sampler=sampler, **kwargs)
    return engine, col


def _tick_until_ready(engine: RoundEngine, delta: float, *, limit: int = 100_000) -> list[float]:
    seen: list[float] = []
    for _ in range(limit):
        m = engine.tick(delta)
        if m is not None:
            seen.append(m)
        if engine.status == "ready":
            return seen
    raise AssertionError("round did not resolve")


def test_start_deducts_bet_and_enters_running() -> None:
    engine, col = _engine(crash_point=3.0)

    event = engine.start(10)

    assert isinstance(event, RoundStarted)
    assert engine.status == "running"
    assert engine.balance == 990
    assert engine.nonce == 1
    assert engine.multiplier == 1.0
    assert event.crash_point == 3.0
    assert re.match(r"^0x[0-9a-f]{8}$", event.round_hash)
    assert col.types() == ["round.start"]


def test_start_while_running_is_a_noop() -> None:
    engine, col = _engine(crash_point=3.0)
    engine.start(10)
    engine.tick(0.02)
    before = (engine.balance, engine.nonce, engine.crash_point, engine.multiplier)

    assert engine.start(50) is None

    assert (engine.balance, engine.nonce, engine.crash_point, engine.multiplier) == before
    assert col.types() == ["round.start"]


def test_cashout_while_ready_reports_invalid_operation() -> None:
    engine, col = _engine()

    with pytest.raises(InvalidOperation) as exc:
        engine.cashout()

    assert exc.value.reason == "cashout_without_round"
    assert engine.balance == 1000
    assert engine.nonce == 0
    assert engine.history == ()
    assert col.events == []


def test_tick_while_ready_is_a_noop() -> None:
    engine, col = _engine()

    assert engine.tick(0.02) is None
    assert engine.multiplier == 1.0
    assert col.events == []


def test_end_to_end_manual_cashout_at_two() -> None:
    engine, col = _engine(crash_point=5.0, start_balance=1000)

    engine.start(10)
    assert engine.balance == 990

    while engine.multiplier < 2.0:
        engine.tick(0.001)
    assert engine.status == "running"

    event = engine.cashout()

    assert event.payout == 20.0
    assert event.auto is False
    assert engine.balance == 1010.0
    assert engine.history[0] == HistoryEntry(outcome="win", multiplier=2.0)
    assert engine.status == "ready"
    assert col.types() == ["round.start", "round.cashout", "round.end"]


def test_crash_resolution_and_multiplier_bounds() -> None:
    engine, col = _engine(crash_point=1.5)
    engine.start(10)

    seen = _tick_until_ready(engine, 0.05)

    assert all(1.0 <= m <= 1.5 for m in seen)
    assert seen[-1] == 1.5
    assert engine.balance == 990
    assert engine.history[0] == HistoryEntry.crash(1.5)
    assert col.types() == ["round.start", "round.crash", "round.end"]

    crashed = col.of(Crashed)[0]
    ended = col.of(RoundEnded)[0]
    assert crashed.crash_point == 1.5
    assert ended.outcome == "crash"
    assert ended.multiplier == 1.5
    assert ended.payout is None
    assert ended.balance == 990


def test_auto_cashout_pays_at_threshold() -> None:
    engine, col = _engine(crash_point=5.0)
    engine.start(10, auto_cashout=1.5)

    _tick_until_ready(engine, 0.05)

    cashed = col.of(CashedOut)[0]
    assert cashed.auto is True
    assert cashed.multiplier == 1.5
    assert cashed.payout == 15.0
    assert engine.balance == 1005.0
    # the post-growth multiplier may have passed the threshold
    assert engine.multiplier >= 1.5
    assert engine.history[0] == HistoryEntry.win(1.5)


def test_auto_cashout_above_crash_point_crashes() -> None:
    engine, col = _engine(crash_point=1.2)
    engine.start(10, auto_cashout=3.0)

    _tick_until_ready(engine, 0.05)

    assert col.types() == ["round.start", "round.crash", "round.end"]
    assert engine.balance == 990


def test_auto_cashout_wins_over_crash_on_same_tick() -> None:
    engine, col = _engine(crash_point=1.5)
    engine.start(10, auto_cashout=1.5)

    _tick_until_ready(engine, 0.05)

    assert col.types() == ["round.start", "round.cashout", "round.end"]
    assert engine.balance == 1005.0


def test_crash_point_of_one_crashes_on_first_tick() -> None:
    engine, col = _engine(crash_point=1.0)
    engine.start(10)

    assert engine.tick(0.02) == 1.0
    assert engine.status == "ready"
    assert col.types() == ["round.start", "round.crash", "round.end"]


def test_default_bet_and_auto_cash_from_options() -> None:
    engine, col = _engine(crash_point=5.0, start_bet=25, auto_cash=2.0)
    engine.start()

    assert engine.balance == 975
    _tick_until_ready(engine, 0.05)
    assert col.of(CashedOut)[0].multiplier == 2.0
    assert engine.balance == 1025.0


def test_delta_is_clamped_to_tick_bounds() -> None:
    engine, _ = _engine(crash_point=100.0)
    engine.start(10)

    assert engine.tick(10.0) == pytest.approx(1.0 + 0.05 * 0.9)
    assert engine.tick(-1.0) == pytest.approx((1.0 + 0.05 * 0.9) * (1.0 + 0.001 * 0.9))


def test_non_finite_delta_is_rejected() -> None:
    engine, _ = _engine(crash_point=100.0)
    engine.start(10)

    with pytest.raises(ValueError):
        engine.tick(math.nan)
    assert engine.multiplier == 1.0


def test_invalid_bets_do_not_mutate_anything() -> None:
    engine, col = _engine()

    with pytest.raises(InvalidBet):
        engine.start(0.5)
    with pytest.raises(InsufficientFunds):
        engine.start(5000)
    with pytest.raises(InvalidBet):
        engine.start(10, auto_cashout=0.5)
    with pytest.raises(InvalidBet):
        engine.start(10, auto_cashout=-2)

    assert engine.balance == 1000
    assert engine.nonce == 0
    assert engine.status == "ready"
    assert col.events == []


def test_event_order_and_sequence_across_rounds() -> None:
    engine, col = _engine(crash_point=2.0)

    for i in range(3):
        engine.start(10, auto_cashout=1.5 if i % 2 == 0 else 0)
        _tick_until_ready(engine, 0.05)

    assert col.types() == [
        "round.start", "round.cashout", "round.end",
        "round.start", "round.crash", "round.end",
        "round.start", "round.cashout", "round.end",
    ]
    seqs = [e.sequence for e in col.events]
    assert seqs == sorted(seqs)
    assert len(set(seqs)) == len(seqs)
    assert [e.nonce for e in col.of(RoundEnded)] == [1, 2, 3]


def test_same_seed_same_crash_points_regardless_of_tick_timing() -> None:
    a, col_a = _engine(seed="determinism")
    b, col_b = _engine(seed="determinism")

    for _ in range(30):
        a.start(10)
        _tick_until_ready(a, 0.05)
        b.start(10)
        _tick_until_ready(b, 0.01)

    starts_a = col_a.of(RoundStarted)
    starts_b = col_b.of(RoundStarted)
    assert [s.crash_point for s in starts_a] == [s.crash_point for s in starts_b]
    assert [s.round_hash for s in starts_a] == [s.round_hash for s in starts_b]
    assert all(s.crash_point >= 1.0 for s in starts_a)


def test_seeded_rounds_keep_multiplier_within_bounds() -> None:
    engine, col = _engine(seed="bounds")

    for _ in range(20):
        started = engine.start(10)
        seen = _tick_until_ready(engine, 0.05)
        assert all(1.0 <= m <= started.crash_point for m in seen)


def test_history_cap_after_25_rounds() -> None:
    engine, _ = _engine(crash_point=5.0)

    for i in range(25):
        engine.start(10, auto_cashout=1 + (i + 1) / 10)
        _tick_until_ready(engine, 0.05)

    history = engine.history
    assert len(history) == 20
    assert all(h.is_win for h in history)
    assert history[0].multiplier == pytest.approx(3.5)
    assert history[-1].multiplier == pytest.approx(1.6)


@pytest.mark.parametrize("seed", [None, ""])
def test_missing_seed_is_generated_and_flagged(seed: str | None) -> None:
    engine, _ = _engine(seed=seed)

    assert engine.seed_generated is True
    assert engine.seed


def test_abandoned_round_keeps_bet_deducted() -> None:
    engine, col = _engine(crash_point=3.0)
    engine.start(10)
    engine.tick(0.02)

    # host stops ticking: nothing resolves
    assert engine.status == "running"
    assert engine.balance == 990
    assert col.types() == ["round.start"]


class RaisesOnce:
    """
    Listener whose first delivery of event_type fails.
    """

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        self.raised = False

    def subscriptions(self):
        return [(self.event_type, self._on_event)]

    def _on_event(self, e: Event) -> None:
        if not self.raised:
            self.raised = True
            raise RuntimeError(f"listener failed on {e.event_type}")


def test_failing_cashout_listener_does_not_allow_a_second_payout() -> None:
    engine, col = _engine(crash_point=5.0)
    wire_components(bus=engine.bus, components=[RaisesOnce("round.cashout")])

    engine.start(10)
    engine.tick(0.05)

    with pytest.raises(RuntimeError):
        engine.cashout()

    # settled before the listener ran
    assert engine.status == "ready"
    balance = engine.balance
    assert balance > 990
    assert len(engine.history) == 1

    with pytest.raises(InvalidOperation):
        engine.cashout()

    assert engine.balance == balance
    assert len(engine.history) == 1
    assert engine.tick(0.05) is None


def test_failing_crash_listener_leaves_round_settled() -> None:
    engine, _ = _engine(crash_point=1.0)
    wire_components(bus=engine.bus, components=[RaisesOnce("round.crash")])

    engine.start(10)
    with pytest.raises(RuntimeError):
        engine.tick(0.016)

    assert engine.status == "ready"
    assert engine.balance == 990
    assert engine.history == (HistoryEntry.crash(1.0),)
    assert engine.tick(0.016) is None

    # the next round starts normally
    assert engine.start(10) is not None
    assert engine.nonce == 2


def _crash_points_and_hashes(seed: str, rounds: int) -> list[tuple[float, str]]:
    engine, col = _engine(seed=seed)
    for _ in range(rounds):
        engine.start(10)
        engine.cashout()
    return [(e.crash_point, e.round_hash) for e in col.of(RoundStarted)]


def test_seeded_crash_points_and_hashes_are_pinned() -> None:
    assert _crash_points_and_hashes("demo", 6) == [
        (2.53, "0x7da8b1f9"),
        (1.11, "0xadcc0f8e"),
        (4.07, "0xfe6bc200"),
        (1.54, "0x2f1051c0"),
        (2.04, "0x4bea2562"),
        (1.26, "0x521b762c"),
    ]


def test_heavy_tail_round_consumes_two_draws_before_the_hash() -> None:
    # first round of "tail-50" lands in the heavy tail
    assert _crash_points_and_hashes("tail-50", 2)[0] == (17.5, "0xa431d1ef")
    assert _crash_points_and_hashes("tail-50", 2)[1][0] == 1.38


def test_seed_generated_upstream_is_reported() -> None:
    bus = EventBus()
    engine = RoundEngine(session_id="test", bus=bus, seed="abc123", seed_generated=True)

    assert engine.seed == "abc123"
    assert engine.seed_generated is True
