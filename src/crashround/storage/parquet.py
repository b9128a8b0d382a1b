from __future__ import annotations

from pathlib import Path

import structlog

from crashround.evaluation.outcomes import RoundOutcomeSeries

log = structlog.get_logger()


class ParquetUnavailable(RuntimeError):
    pass


def _rounds_table(series: RoundOutcomeSeries):
    try:
        import pyarrow as pa
    except ImportError as exc:
        raise ParquetUnavailable(
            "pyarrow is required for rounds.parquet. Install: pip install pyarrow"
        ) from exc

    schema = pa.schema(
        [
            ("nonce", pa.int64()),
            ("crash_point", pa.float64()),
            ("outcome", pa.string()),
            ("multiplier", pa.float64()),
            ("bet", pa.float64()),
            ("payout", pa.float64()),
            ("balance", pa.float64()),
        ]
    )
    return pa.Table.from_arrays(
        [
            pa.array(series.nonce, type=pa.int64()),
            pa.array(series.crash_point, type=pa.float64()),
            pa.array(series.outcome, type=pa.string()),
            pa.array(series.multiplier, type=pa.float64()),
            pa.array(series.bet, type=pa.float64()),
            pa.array(series.payout, type=pa.float64()),
            pa.array(series.balance, type=pa.float64()),
        ],
        schema=schema,
    )


def write_rounds_parquet(*, path: Path, series: RoundOutcomeSeries, compression: str = "zstd") -> bool:
    """
    Write one row per settled round, atomically (tmp file then replace).

    Crashed rounds have a null payout. Returns False and writes nothing
    when no round settled.
    """
    if len(series) == 0:
        log.info("parquet.write_skipped_empty", path=str(path))
        return False

    table = _rounds_table(series)
    import pyarrow.parquet as pq

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        pq.write_table(table, tmp, compression=compression, write_statistics=True)
        tmp.replace(path)
    finally:
        if tmp.exists():
            tmp.unlink()

    log.info("parquet.rounds_written", path=str(path), rows=table.num_rows, compression=compression)
    return True
