from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from crashround.game.ledger import Bet

RoundStatus = Literal["ready", "running"]


@dataclass(slots=True)
class EngineState:
    """
    Round state for one engine instance.

    - nonce: accepted rounds so far (the running round's id while running)
    - sequence: monotonic counter stamped on every published event
    - crash_point / multiplier / bet / round_hash: the current (or last) round

    Guardrails:
      - next_nonce only valid while ready (one round in flight at most)
      - is_open is the host-level session flag; the engine itself ignores it
    """

    session_id: str
    status: RoundStatus = "ready"
    nonce: int = 0
    sequence: int = 0

    crash_point: float = 1.0
    multiplier: float = 1.0
    bet: Bet | None = None
    round_hash: str | None = None
    ticks: int = 0

    is_open: bool = False

    @property
    def is_running(self) -> bool:
        return self.status == "running"

    def next_nonce(self) -> int:
        if self.is_running:
            raise RuntimeError("cannot allocate a nonce while a round is running")
        self.nonce += 1
        return self.nonce

    def next_sequence(self) -> int:
        self.sequence += 1
        return self.sequence
