from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import orjson
import structlog


def _json_serializer(obj: Any, default: Any) -> str:
    """
    JSON serializer for structured logs (orjson, sorted keys).
    """
    return orjson.dumps(obj, default=default, option=orjson.OPT_SORT_KEYS).decode("utf-8")


def configure_logging(*, level: str = "INFO", json_logs: bool = True, stream: TextIO | None = None) -> None:
    """
    Configure structlog + stdlib logging once at process startup.

    json_logs=False switches to the human-readable console renderer
    (local development).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    out = stream if stream is not None else sys.stdout

    renderer: Any
    if json_logs:
        renderer = structlog.processors.JSONRenderer(serializer=_json_serializer)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    processors: list[Any] = [
        # session_id, component, ...
        structlog.contextvars.merge_contextvars,

        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),

        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,

        renderer,
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[logging.StreamHandler(out)],
    )


def bind_context(**values: Any) -> None:
    """
    Bind values to every later log entry in this context.

    Example:
        bind_context(session_id="20260101T120000Z_ab12cd34", component="engine")
    """
    structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
