# src/crashround/evaluation/recorder.py
from __future__ import annotations

from typing import Sequence

from crashround.core.events.base import Event
from crashround.core.events.rounds import RoundEnded, RoundStarted
from crashround.evaluation.outcomes import RoundOutcomeSeries


class RoundRecorderComponent:
    """
    Bus listener that turns round.start / round.end pairs into a
    RoundOutcomeSeries row.
    """

    def __init__(self) -> None:
        self.series = RoundOutcomeSeries.empty()
        # nonce -> RoundStarted for the round in flight
        self._open: dict[int, RoundStarted] = {}

    def subscriptions(self) -> Sequence[tuple[str, callable]]:
        return (
            (RoundStarted.event_type, self.on_round_started),
            (RoundEnded.event_type, self.on_round_ended),
        )

    def on_round_started(self, e: Event) -> None:
        assert isinstance(e, RoundStarted)
        self._open[e.nonce] = e

    def on_round_ended(self, e: Event) -> None:
        assert isinstance(e, RoundEnded)
        started = self._open.pop(e.nonce, None)
        if started is None:
            return

        self.series.append(
            nonce=e.nonce,
            crash_point=started.crash_point,
            outcome=e.outcome,
            multiplier=e.multiplier,
            bet=started.bet,
            payout=e.payout,
            balance=e.balance,
        )
