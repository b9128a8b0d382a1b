# src/crashround/core/events/rounds.py
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Literal

from crashround.core.events.base import Event

RoundOutcome = Literal["win", "crash"]


@dataclass(frozen=True, slots=True)
class RoundStarted(Event):
    """
    A bet was accepted and the multiplier starts at 1.0.
    """
    event_type: ClassVar[str] = "round.start"

    nonce: int
    crash_point: float
    round_hash: str

    bet: float
    auto_cashout: float  # 0.0 when disabled


@dataclass(frozen=True, slots=True)
class CashedOut(Event):
    """
    The player left the round before the crash (manual or automatic).
    """
    event_type: ClassVar[str] = "round.cashout"

    nonce: int
    multiplier: float
    payout: float
    auto: bool


@dataclass(frozen=True, slots=True)
class Crashed(Event):
    """
    The multiplier reached the crash point with the bet still in.
    """
    event_type: ClassVar[str] = "round.crash"

    nonce: int
    crash_point: float


@dataclass(frozen=True, slots=True)
class RoundEnded(Event):
    """
    Always the last event of a round, after CashedOut or Crashed.

    multiplier is the cashout multiplier for a win and the crash point
    for a crash; payout is None on a crash.
    """
    event_type: ClassVar[str] = "round.end"

    nonce: int
    outcome: RoundOutcome
    multiplier: float
    balance: float
    payout: float | None = None
