from __future__ import annotations

import json
import os
import platform
import secrets
import socket
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog

from crashround.core.logging.setup import bind_context
from crashround.game.rng import generate_seed

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class SessionInfo:
    """
    Immutable metadata describing one session directory.
    """
    session_id: str
    session_dir: Path
    created_at_utc: datetime
    seed: str
    seed_generated: bool


class SessionManager:
    """
    Creates session directories.

    - unique session id (UTC timestamp + random suffix)
    - config snapshot (config.json) and provenance (meta.json)
    - the seed actually used, so generated seeds stay replayable
    """

    _META_SCHEMA_VERSION = 1

    def __init__(self, sessions_dir: Path) -> None:
        self._sessions_dir = sessions_dir

    def create_session(
        self,
        *,
        seed: Optional[str],
        config_snapshot: Mapping[str, Any],
    ) -> SessionInfo:
        self._sessions_dir.mkdir(parents=True, exist_ok=True)

        created_at = datetime.now(timezone.utc)
        timestamp = created_at.strftime("%Y%m%dT%H%M%SZ")
        session_id = f"{timestamp}_{secrets.token_hex(4)}"

        session_dir = self._sessions_dir / session_id
        session_dir.mkdir(parents=False, exist_ok=False)

        seed_generated = not seed
        if seed_generated:
            seed = generate_seed()
            log.warning("session.seed_generated", session_id=session_id, seed=seed)

        self._write_json_atomic(
            path=session_dir / "config.json",
            payload=config_snapshot,
            default=str,
        )

        metadata: dict[str, Any] = {
            "schema_version": self._META_SCHEMA_VERSION,
            "session_id": session_id,
            "created_at_utc": created_at.isoformat(),
            "seed": seed,
            "seed_generated": seed_generated,
            "pid": os.getpid(),
            "hostname": socket.gethostname(),
            "python": {
                "version": sys.version.split()[0],
                "executable": sys.executable,
            },
            "platform": {
                "system": platform.system(),
                "release": platform.release(),
                "machine": platform.machine(),
            },
        }
        self._write_json_atomic(path=session_dir / "meta.json", payload=metadata)

        bind_context(session_id=session_id)

        log.info(
            "session.created",
            session_id=session_id,
            session_dir=str(session_dir),
            seed_generated=seed_generated,
        )

        return SessionInfo(
            session_id=session_id,
            session_dir=session_dir,
            created_at_utc=created_at,
            seed=seed,
            seed_generated=seed_generated,
        )

    def _write_json_atomic(
        self,
        *,
        path: Path,
        payload: Any,
        default: Any | None = None,
    ) -> None:
        """
        Write to a tmp file then replace, so readers never see partial JSON.
        """
        tmp = path.with_suffix(path.suffix + ".tmp")
        data = json.dumps(payload, indent=2, sort_keys=True, default=default)
        tmp.write_text(data, encoding="utf-8")
        tmp.replace(path)
