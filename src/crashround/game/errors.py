from __future__ import annotations


class CrashRoundError(Exception):
    """
    Base class for recoverable round/settlement failures.

    Raised before any state is mutated, so the caller can simply report it
    and keep using the engine.
    """

    reason: str = "error"

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class InvalidBet(CrashRoundError, ValueError):
    reason = "invalid_bet"


class InsufficientFunds(CrashRoundError):
    reason = "insufficient_funds"


class InvalidOperation(CrashRoundError, RuntimeError):
    reason = "invalid_operation"
