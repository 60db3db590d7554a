"""Logging setup for the schedule data layer.

Modules log through ``logging.getLogger(__name__)``.  ``configure_logging``
installs one root handler whose structlog formatter renders those records as
console text or JSON lines.  Values bound with ``bind_database`` (and any other
``structlog.contextvars`` bindings) plus the active OTel trace ids are merged
into every record.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog
from opentelemetry import trace

from notion_schedule.config import LoggingConfig

_HANDLER_NAME = "notion_schedule"

# Per-request transport chatter from the HTTP stack.
_QUIET_LOGGERS = ("httpx", "httpcore")


def bind_database(database_id: str):
    """Bind ``database_id`` to log records for the duration of a ``with`` block."""
    return structlog.contextvars.bound_contextvars(database_id=database_id)


def add_trace_ids(
    logger: Any,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Attach trace/span ids while a valid span is current; add nothing otherwise."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict.setdefault("trace_id", trace.format_trace_id(ctx.trace_id))
        event_dict.setdefault("span_id", trace.format_span_id(ctx.span_id))
    return event_dict


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def configure_logging(
    config: LoggingConfig | None = None,
    *,
    stream: IO[str] | None = None,
) -> None:
    """Route stdlib log records through structlog according to *config*.

    Reconfiguring replaces the handler installed by a previous call and leaves
    handlers owned by anyone else in place.
    """
    config = config or LoggingConfig()
    timestamp_fmt = "iso" if config.format == "json" else "%H:%M:%S"

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(config.format),
        ],
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt=timestamp_fmt),
            add_trace_ids,
        ],
    )
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(config.level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
