# src/crashround/evaluation/outcomes.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class RoundOutcomeSeries:
    """
    Columnar record of settled rounds, one row per round.end.

    payout is None for crashed rounds.
    """
    nonce: list[int]
    crash_point: list[float]
    outcome: list[str]
    multiplier: list[float]
    bet: list[float]
    payout: list[float | None]
    balance: list[float]

    @classmethod
    def empty(cls) -> "RoundOutcomeSeries":
        return cls(nonce=[], crash_point=[], outcome=[], multiplier=[], bet=[], payout=[], balance=[])

    def __len__(self) -> int:
        return len(self.nonce)

    def append(
        self,
        *,
        nonce: int,
        crash_point: float,
        outcome: str,
        multiplier: float,
        bet: float,
        payout: float | None,
        balance: float,
    ) -> None:
        self.nonce.append(nonce)
        self.crash_point.append(crash_point)
        self.outcome.append(outcome)
        self.multiplier.append(multiplier)
        self.bet.append(bet)
        self.payout.append(payout)
        self.balance.append(balance)


def summarize(series: RoundOutcomeSeries) -> dict:
    """
    Session summary: hit rate, money in/out, return-to-player, crash point stats.
    """
    n = len(series)
    if n == 0:
        return {
            "rounds": 0,
            "wins": 0,
            "crashes": 0,
            "win_rate": 0.0,
            "total_wagered": 0.0,
            "total_paid": 0.0,
            "rtp": 0.0,
            "crash_point_mean": 0.0,
            "crash_point_max": 0.0,
            "balance_end": None,
        }

    wins = sum(1 for o in series.outcome if o == "win")
    wagered = sum(series.bet)
    paid = sum(p for p in series.payout if p is not None)

    return {
        "rounds": n,
        "wins": wins,
        "crashes": n - wins,
        "win_rate": wins / n,
        "total_wagered": round(wagered, 2),
        "total_paid": round(paid, 2),
        "rtp": paid / wagered if wagered > 0 else 0.0,
        "crash_point_mean": sum(series.crash_point) / n,
        "crash_point_max": max(series.crash_point),
        "balance_end": series.balance[-1],
    }
