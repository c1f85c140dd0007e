"""Logging for posthammer: one stderr handler, optional JSON lines with worker context."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Name given to the handler installed by setup_logging, so it can be told
# apart from handlers attached by the host application or test harness.
HANDLER_NAME = "posthammer.stderr"

# Record attributes carried through ``extra=`` by the runner and dispatcher.
CONTEXT_FIELDS = ("worker_index", "request_index")


def worker_context(worker_index: int, request_index: int | None = None) -> dict[str, Any]:
    """Build the ``extra=`` mapping tagging a log record with worker context.

    Args:
        worker_index: Index of the worker emitting the record.
        request_index: 0-based request index, when the record concerns
            one request.

    Returns:
        A dict suitable for the ``extra`` argument of logger calls.
    """
    context: dict[str, Any] = {"worker_index": worker_index}
    if request_index is not None:
        context["request_index"] = request_index
    return context


class _JsonFormatter(logging.Formatter):
    """One-line JSON formatter.

    Every line has timestamp, level, logger and message. Records tagged
    with :func:`worker_context` also carry ``worker_index`` and, for
    per-request records, ``request_index``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def _make_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return _JsonFormatter()
    return logging.Formatter(
        "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def installed_handler(logger: logging.Logger) -> logging.Handler | None:
    """Return the handler ``setup_logging`` installed on *logger*, if any."""
    for handler in logger.handlers:
        if handler.get_name() == HANDLER_NAME:
            return handler
    return None


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the root posthammer logger.

    Installs one stderr handler on the ``posthammer`` namespace. Later
    calls reuse that handler and apply the new level and format. Handlers
    installed by anything else are left untouched.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: If True, emit JSON lines including worker context.

    Returns:
        The configured ``posthammer`` root logger.
    """
    logger = logging.getLogger("posthammer")
    logger.setLevel(level)

    handler = installed_handler(logger)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(HANDLER_NAME)
        logger.addHandler(handler)

    handler.setLevel(level)
    handler.setFormatter(_make_formatter(json_format))

    # Keep posthammer output off the root logger
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``posthammer`` namespace.

    Example: ``get_logger("engine.runner")`` returns
    ``logging.getLogger("posthammer.engine.runner")``.
    """
    return logging.getLogger(f"posthammer.{name}")
