"""Seeded crash-round engine: RNG, crash-point sampling, settlement and round lifecycle."""

from crashround.core.engine.engine import RoundEngine
from crashround.core.events.bus import EventBus
from crashround.game.errors import CrashRoundError, InsufficientFunds, InvalidBet, InvalidOperation
from crashround.game.ledger import HistoryEntry, SettlementLedger
from crashround.game.rng import SeededRNG
from crashround.game.sampler import CrashPointSampler

__version__ = "0.1.0"

__all__ = [
    "CrashPointSampler",
    "CrashRoundError",
    "EventBus",
    "HistoryEntry",
    "InsufficientFunds",
    "InvalidBet",
    "InvalidOperation",
    "RoundEngine",
    "SeededRNG",
    "SettlementLedger",
    "__version__",
]
