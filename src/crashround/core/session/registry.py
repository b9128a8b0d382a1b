from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from threading import Lock
from typing import Literal

from crashround.core.session.manager import SessionInfo

SessionStatus = Literal["created", "open", "stopped", "error"]


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """
    In-memory view of a session for API visibility.

    Durable truth is the session directory on disk.
    """
    session_id: str
    session_dir: str
    seed: str

    status: SessionStatus
    created_at_utc: datetime
    updated_at_utc: datetime

    error_type: str | None = None
    error_message: str | None = None


class SessionRegistry:
    """
    Thread-safe registry of session status.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[str, SessionRecord] = {}

    def upsert_created(self, info: SessionInfo) -> SessionRecord:
        now = datetime.now(timezone.utc)
        rec = SessionRecord(
            session_id=info.session_id,
            session_dir=str(info.session_dir),
            seed=info.seed,
            status="created",
            created_at_utc=info.created_at_utc,
            updated_at_utc=now,
        )
        with self._lock:
            self._sessions[info.session_id] = rec
        return rec

    def mark_open(self, *, session_id: str) -> None:
        self._set(session_id=session_id, status="open")

    def mark_stopped(self, *, session_id: str) -> None:
        self._set(session_id=session_id, status="stopped")

    def mark_error(self, *, session_id: str, error_type: str, error_message: str) -> None:
        self._set(session_id=session_id, status="error", error_type=error_type, error_message=error_message)

    def get(self, *, session_id: str) -> SessionRecord | None:
        with self._lock:
            return self._sessions.get(session_id)

    def list(self) -> list[SessionRecord]:
        with self._lock:
            items = list(self._sessions.values())
        items.sort(key=lambda r: r.updated_at_utc, reverse=True)
        return items

    def _set(
        self,
        *,
        session_id: str,
        status: SessionStatus,
        error_type: str | None = None,
        error_message: str | None = None,
    ) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            cur = self._sessions.get(session_id)
            if cur is None:
                # unknown to this process: keep it minimal but visible
                cur = SessionRecord(
                    session_id=session_id,
                    session_dir="",
                    seed="",
                    status=status,
                    created_at_utc=now,
                    updated_at_utc=now,
                )
            self._sessions[session_id] = replace(
                cur,
                status=status,
                updated_at_utc=now,
                error_type=error_type,
                error_message=error_message,
            )
