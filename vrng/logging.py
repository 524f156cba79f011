"""
Structured logging setup for VRNG processes.

Library modules log through stdlib ``logging`` (``logging.getLogger("vrng.*")``
with ``extra=`` fields). A process entrypoint calls :func:`setup_logging` once
so those records, and anything logged through structlog, are rendered by the
same processor chain:

- JSON lines by default, or a console renderer for interactive use,
- ``extra=`` fields merged into the event dict,
- a ``service`` key on every event.

Environment
-----------
- LOG_LEVEL: one of DEBUG, INFO, WARNING, ERROR (default: WARNING)
- LOG_FORMAT: "json" (default) or "console"
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import JSONRenderer

HANDLER_NAME = "vrng"

# Attributes every LogRecord has; anything else came from ``extra=``.
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _merge_record_extras(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    record = event_dict.get("_record")
    if record is not None:
        for k, v in vars(record).items():
            if k not in _RECORD_ATTRS and not k.startswith("_"):
                event_dict.setdefault(k, v)
    return event_dict


def _base_processors(service_name: str) -> Iterable:
    yield structlog.stdlib.add_log_level
    yield structlog.processors.TimeStamper(fmt="iso", utc=True)
    yield merge_contextvars
    yield structlog.processors.StackInfoRenderer()
    yield structlog.processors.format_exc_info
    yield structlog.processors.UnicodeDecoder()

    def _ensure_service(_: Any, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
        ev.setdefault("service", service_name)
        return ev

    yield _ensure_service


def setup_logging(
    *,
    service_name: str = "vrng",
    level: Optional[str | int] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Configure structlog + stdlib logging. Safe to call again: the handler
    installed by a previous call is replaced, other root handlers are kept.
    """
    env_level = os.getenv("LOG_LEVEL", "").upper() or None
    env_format = os.getenv("LOG_FORMAT", "").lower() or None

    level = level or env_level or "WARNING"
    log_format = (log_format or env_format or "json").lower()

    processors = list(_base_processors(service_name))

    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=False, sort_keys=False)
    else:
        renderer = JSONRenderer(sort_keys=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                _merge_record_extras,
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                *processors,
            ],
        )
    )

    handler.set_name(HANDLER_NAME)

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        if h.get_name() == HANDLER_NAME:
            root.removeHandler(h)
    root.addHandler(handler)


def teardown_logging() -> None:
    """Detach the handler installed by :func:`setup_logging`, if any."""
    root = logging.getLogger()
    for h in list(root.handlers):
        if h.get_name() == HANDLER_NAME:
            root.removeHandler(h)
            h.close()


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, bound to ``name`` if given."""
    log = structlog.get_logger(name)
    return log


__all__ = ["HANDLER_NAME", "setup_logging", "teardown_logging", "get_logger"]
