from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


def validate_session_id(session_id: str) -> None:
    if not session_id or not _SESSION_ID_RE.match(session_id):
        raise ValueError(f"invalid session_id: {session_id!r}")


@dataclass(frozen=True, slots=True)
class SessionArtifacts:
    """
    File layout of one session directory.
    """
    session_dir: Path

    @property
    def config_json(self) -> Path:
        return self.session_dir / "config.json"

    @property
    def meta_json(self) -> Path:
        return self.session_dir / "meta.json"

    @property
    def events_jsonl(self) -> Path:
        return self.session_dir / "events.jsonl"

    @property
    def rounds_parquet(self) -> Path:
        return self.session_dir / "rounds.parquet"

    @property
    def summary_json(self) -> Path:
        return self.session_dir / "summary.json"

    def ensure_dirs(self) -> None:
        self.session_dir.mkdir(parents=True, exist_ok=True)

    def as_dict(self) -> dict[str, str]:
        return {
            "config_json": str(self.config_json),
            "meta_json": str(self.meta_json),
            "events_jsonl": str(self.events_jsonl),
            "rounds_parquet": str(self.rounds_parquet),
            "summary_json": str(self.summary_json),
        }


def artifacts_for(*, sessions_dir: Path, session_id: str) -> SessionArtifacts:
    validate_session_id(session_id)
    session_dir = (sessions_dir / session_id).resolve()

    base = sessions_dir.resolve()
    if base not in session_dir.parents:
        raise ValueError("invalid session_dir resolution")

    return SessionArtifacts(session_dir=session_dir)
