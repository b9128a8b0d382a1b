from __future__ import annotations

import os
from dataclasses import fields
from pathlib import Path
from typing import Any, BinaryIO, Optional

import orjson

from crashround.core.events.base import Event

_ENVELOPE_FIELDS = frozenset({"event_id", "timestamp_utc", "sequence", "session_id", "nonce"})


def event_record(event: Event, *, session_id: str) -> dict[str, Any]:
    """
    One events.jsonl line.

    Envelope keys are shared by every event; nonce is None for session
    events. Everything else the event carries goes under "data".
    """
    data = {
        f.name: getattr(event, f.name)
        for f in fields(event)
        if f.name not in _ENVELOPE_FIELDS
    }
    return {
        "seq": event.sequence,
        "event_type": event.event_type,
        "event_id": event.event_id,
        "ts": event.timestamp_utc,
        "session_id": session_id,
        "nonce": getattr(event, "nonce", None),
        "data": data,
    }


class JsonlEventStore:
    """
    Append-only events.jsonl for one session, one record per event in
    publish order. Lines are flushed as written.
    """

    def __init__(self, *, path: Path, session_id: str, fsync: bool = False) -> None:
        self._path = path
        self._session_id = session_id
        self._fsync = fsync
        self._fh: Optional[BinaryIO] = None

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: Event) -> None:
        if self._fh is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self._path.open("ab")

        line = orjson.dumps(
            event_record(event, session_id=self._session_id),
            option=orjson.OPT_SORT_KEYS | orjson.OPT_APPEND_NEWLINE,
        )
        self._fh.write(line)
        self._fh.flush()
        if self._fsync:
            os.fsync(self._fh.fileno())

    def close(self) -> None:
        if self._fh is None:
            return
        try:
            if self._fsync:
                os.fsync(self._fh.fileno())
        finally:
            self._fh.close()
            self._fh = None
