from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from crashround.core.events.base import Event


@dataclass(frozen=True, slots=True)
class SessionStarted(Event):
    """
    Emitted when the host opens a session on an engine.
    """

    event_type: ClassVar[str] = "session.started"

    session_id: str
    seed: str
    seed_generated: bool


@dataclass(frozen=True, slots=True)
class SessionStopped(Event):
    """
    Emitted when the host stops driving the engine.

    abandoned_nonce is set when a round was still running: that round never
    resolves and its bet stays deducted.
    """

    event_type: ClassVar[str] = "session.stopped"

    session_id: str
    rounds_played: int
    balance: float
    abandoned_nonce: int | None = None


@dataclass(frozen=True, slots=True)
class SessionError(Event):
    """
    Emitted when a host driver fails while ticking the engine.
    """

    event_type: ClassVar[str] = "session.error"

    session_id: str

    error_type: str
    error_message: str
