from __future__ import annotations

import math
from dataclasses import dataclass
from math import isfinite
from typing import Literal

import structlog

from crashround.game.errors import InsufficientFunds, InvalidBet

log = structlog.get_logger()

Outcome = Literal["win", "crash"]

DEFAULT_HISTORY_LIMIT = 20
MIN_BET = 1.0


@dataclass(frozen=True, slots=True)
class Bet:
    amount: float
    auto_cashout: float = 0.0  # 0 disables auto-cashout

    @property
    def auto_enabled(self) -> bool:
        return self.auto_cashout > 0.0


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """
    One settled round.

    - win: multiplier is the cashout multiplier (2dp)
    - crash: multiplier is the crash point the round ended at
    """
    outcome: Outcome
    multiplier: float

    @classmethod
    def win(cls, multiplier: float) -> "HistoryEntry":
        return cls(outcome="win", multiplier=round(multiplier, 2))

    @classmethod
    def crash(cls, crash_point: float) -> "HistoryEntry":
        return cls(outcome="crash", multiplier=crash_point)

    @property
    def is_win(self) -> bool:
        return self.outcome == "win"


def compute_payout(bet_amount: float, multiplier: float) -> float:
    """
    Truncate toward zero at the cent.
    """
    return math.floor(bet_amount * multiplier * 100) / 100


class SettlementLedger:
    """
    Balance + bounded outcome history for one engine.

    Balance only moves through apply_bet / apply_payout. A rejected bet
    leaves the ledger untouched.
    """

    def __init__(self, *, balance: float, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if not isfinite(balance) or balance < 0:
            raise ValueError("balance must be finite and >= 0")
        if history_limit <= 0:
            raise ValueError("history_limit must be > 0")

        self._balance = float(balance)
        self._history_limit = history_limit
        self._history: list[HistoryEntry] = []

    @property
    def balance(self) -> float:
        return self._balance

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._history)

    @property
    def history_limit(self) -> int:
        return self._history_limit

    def check_bet(self, amount: float) -> None:
        if not isfinite(amount) or amount < MIN_BET:
            raise InvalidBet(f"bet must be >= {MIN_BET:g}, got {amount!r}", reason="bet_below_minimum")
        if amount > self._balance:
            raise InsufficientFunds(
                f"bet {amount:.2f} exceeds balance {self._balance:.2f}",
                reason="bet_exceeds_balance",
            )

    def apply_bet(self, amount: float) -> None:
        self.check_bet(amount)
        self._balance -= amount
        log.debug("ledger.bet_applied", amount=amount, balance=self._balance)

    def apply_payout(self, bet_amount: float, multiplier: float) -> float:
        payout = compute_payout(bet_amount, multiplier)
        self._balance += payout
        log.debug("ledger.payout_applied", payout=payout, balance=self._balance)
        return payout

    def record_history(self, entry: HistoryEntry) -> None:
        self._history.insert(0, entry)
        if len(self._history) > self._history_limit:
            del self._history[self._history_limit:]
