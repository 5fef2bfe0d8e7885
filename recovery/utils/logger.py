"""Structured logging utilities for the recovery middleware.

Two kinds of logger live here:

  - The application logger (``configure_logging`` / ``get_logger``): async-safe
    structured logging via structlog, JSON in production, console in dev.
    Every module logs through ``logger = get_logger(__name__)``.
  - The diagnostic sink (``new_logger``): a line-oriented structlog logger used
    by the recovery policy to record recovered panics. It prints one record per
    call, prefixed with a ``YYYY/MM/DD HH:MM:SS`` timestamp, to stderr by default.
"""

import logging
import sys
import time
from contextvars import ContextVar
from typing import IO, Any, Optional

import structlog
from structlog.types import EventDict, Processor

# Context variable for request tracking
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Timestamp layout of the diagnostic sink
LINE_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


def add_request_id(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add request_id to log context if available."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add epoch timestamp to log entries."""
    event_dict["timestamp"] = time.time()
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON format. If False, use console format.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        add_timestamp,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.extend([
            structlog.dev.ConsoleRenderer(colors=True),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "recovery") -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class LineRenderer:
    """Render an event dict as a single free-text record.

    Output shape: ``[<timestamp> ][key=value ... ]<event>``. Metadata goes on
    the first line and the event text is written verbatim after it, so
    multi-line events (message + traceback) keep their trace lines intact.
    """

    def __call__(self, logger: Any, method_name: str, event_dict: EventDict) -> str:
        event = str(event_dict.pop("event", ""))
        timestamp = event_dict.pop("timestamp", None)
        parts = [str(timestamp)] if timestamp else []
        parts.extend(f"{key}={value}" for key, value in sorted(event_dict.items()))
        parts.append(event)
        return " ".join(parts)


def new_logger(file: Optional[IO[str]] = None, timestamps: bool = True) -> Any:
    """Build a line-oriented diagnostic logger.

    Args:
        file:       Stream to write to. Defaults to ``sys.stderr`` at call time.
        timestamps: Prefix each record with a local ``YYYY/MM/DD HH:MM:SS`` stamp.

    Returns:
        structlog logger exposing ``error(event, **kw)`` (and the other levels).
    """
    processors: list[Processor] = [add_request_id]
    if timestamps:
        processors.append(
            structlog.processors.TimeStamper(fmt=LINE_TIMESTAMP_FORMAT, utc=False)
        )
    processors.append(LineRenderer())

    return structlog.wrap_logger(
        structlog.PrintLogger(file=file if file is not None else sys.stderr),
        processors=processors,
        wrapper_class=structlog.BoundLogger,
    )


def set_request_id(request_id: str) -> None:
    """Set request ID in context for all subsequent logs.

    Args:
        request_id: Unique identifier for the request
    """
    request_id_var.set(request_id)


def clear_request_id() -> None:
    """Clear request ID from context."""
    request_id_var.set(None)


# Initialize logging with sensible defaults
# This will be reconfigured by main.py based on environment
configure_logging()
