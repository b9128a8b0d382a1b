from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog

from crashround.core.session.artifacts import SessionArtifacts, artifacts_for
from crashround.core.session.assembly import SessionHandle, build_session
from crashround.core.session.spec import SessionSpec
from crashround.game.sampler import CrashPointSampler

log = structlog.get_logger()


class SessionFactory:
    """
    Builds sessions from their persisted SessionSpec.

    - load/persist SessionSpec (config.json)
    - assemble a SessionHandle
    - add the wiring snapshot to meta.json
    """

    def __init__(self, *, sessions_dir: Path):
        self.sessions_dir = sessions_dir

    # -----------------------
    # SessionSpec I/O
    # -----------------------

    def load_spec(self, *, session_id: str) -> SessionSpec:
        art = artifacts_for(sessions_dir=self.sessions_dir, session_id=session_id)
        if not art.session_dir.exists():
            raise FileNotFoundError(f"session not found: {session_id}")

        if not art.config_json.exists():
            return SessionSpec()

        data = json.loads(art.config_json.read_text(encoding="utf-8"))
        return SessionSpec.model_validate(data)

    def save_spec(self, *, session_id: str, spec: SessionSpec) -> None:
        art = artifacts_for(sessions_dir=self.sessions_dir, session_id=session_id)
        art.ensure_dirs()

        art.config_json.write_text(
            json.dumps(spec.to_canonical_dict(), indent=2, sort_keys=True, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )

    # -----------------------
    # Assembly
    # -----------------------

    def build(
        self,
        *,
        session_id: str,
        spec: SessionSpec,
        sampler: Optional[CrashPointSampler] = None,
        seed_generated: bool = False,
        extra_components: Iterable[object] = (),
    ) -> SessionHandle:
        art = artifacts_for(sessions_dir=self.sessions_dir, session_id=session_id)
        if not art.session_dir.exists():
            raise FileNotFoundError(f"session not found: {session_id}")

        self.save_spec(session_id=session_id, spec=spec)

        handle = build_session(
            sessions_dir=self.sessions_dir,
            session_id=session_id,
            spec=spec,
            sampler=sampler,
            seed_generated=seed_generated,
            extra_components=extra_components,
        )

        self._write_wiring_snapshot(art=handle.artifacts, spec=spec, handle=handle)
        return handle

    def _write_wiring_snapshot(self, *, art: SessionArtifacts, spec: SessionSpec, handle: SessionHandle) -> None:
        meta: dict[str, Any] = {}
        if art.meta_json.exists():
            meta = json.loads(art.meta_json.read_text(encoding="utf-8"))

        meta["spec_hash"] = spec.config_hash()
        meta["components"] = [
            {"type": type(c).__name__, "module": type(c).__module__} for c in handle.components
        ]
        meta["router_wiring"] = handle.wiring.as_records()

        art.meta_json.write_text(
            json.dumps(meta, indent=2, sort_keys=True, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )

        log.info("session.wiring_snapshot_written", session_id=handle.session_id, spec_hash=meta["spec_hash"])
