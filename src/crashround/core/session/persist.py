from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from crashround.core.session.artifacts import SessionArtifacts
from crashround.evaluation.outcomes import RoundOutcomeSeries, summarize
from crashround.storage.parquet import write_rounds_parquet


def _write_json_atomic(path: Path, payload: Any) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n", encoding="utf-8")
    tmp.replace(path)


def persist_outcomes(*, art: SessionArtifacts, series: RoundOutcomeSeries, extra: dict[str, Any] | None = None) -> dict:
    """
    Persists:
      - rounds.parquet (skipped when no round settled)
      - summary.json
    Returns the summary.
    """
    art.ensure_dirs()

    write_rounds_parquet(path=art.rounds_parquet, series=series)

    summary = summarize(series)
    if extra:
        summary.update(extra)
    _write_json_atomic(art.summary_json, summary)
    return summary
