"""Recovery policy: configuration, options and error handlers.

A RecoveryConfig is built once, when the middleware is installed, by applying
an ordered list of options to the defaults (later options win):

    config = new_config(content_type("application/xml"), stack_size(16 << 10))

It is then shared read-only by every request handled by that middleware.
The ``error_handler`` field is the terminal step for a recovered panic: it
receives the config, a ResponseWriter, the diagnostic message and the trimmed
trace lines, and decides what the client sees and what gets logged.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from recovery.constants import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_RESPONSE_STATUS,
    MINIMUM_STACK_SIZE,
)
from recovery.utils.logger import new_logger
from recovery.writer import ResponseWriter


class Logger(Protocol):
    """Anything that accepts a free-text error record plus optional metadata."""

    def error(self, event: str, *args: Any, **kw: Any) -> Any: ...


ErrorHandler = Callable[["RecoveryConfig", ResponseWriter, str, list[str]], Awaitable[None]]


def format_diagnostic(message: str, trace: list[str]) -> str:
    """Join message and trace lines into one newline-separated record."""
    return "%s\n%s" % (message, "\n".join(trace))


async def default_error_handler(
    config: "RecoveryConfig",
    writer: ResponseWriter,
    message: str,
    trace: list[str],
) -> None:
    """Log the diagnostic and answer with a status-only response.

    The trace goes to ``config.logger`` only; the client gets
    ``config.response_status`` with ``Content-Type: config.content_type`` and
    an empty body.
    """
    config.logger.error(format_diagnostic(message, trace))
    writer.headers["Content-Type"] = config.content_type
    await writer.write_header(config.response_status)


async def json_error_handler(
    config: "RecoveryConfig",
    writer: ResponseWriter,
    message: str,
    trace: list[str],
) -> None:
    """Expose the diagnostic to the client as ``{"error": "<message>\\n<trace>"}``.

    Nothing is logged. Meant for development builds only.
    """
    body = json.dumps(
        {"error": format_diagnostic(message, trace)},
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")
    writer.headers["Content-Type"] = config.content_type
    await writer.write_header(config.response_status)
    await writer.write(body)


@dataclass
class RecoveryConfig:
    """Settings consulted when a panic is recovered.

    content_type:    Content-Type of the error response.
    response_status: HTTP status of the error response.
    stack_size:      Byte budget for the captured traceback (>= MINIMUM_STACK_SIZE).
    logger:          Sink for diagnostic records.
    error_handler:   Terminal handler turning a diagnostic into a response.
    """

    content_type: str = DEFAULT_CONTENT_TYPE
    response_status: int = DEFAULT_RESPONSE_STATUS
    stack_size: int = MINIMUM_STACK_SIZE
    logger: Logger = field(default_factory=new_logger)
    error_handler: ErrorHandler = default_error_handler


Option = Callable[[RecoveryConfig], None]


def new_config(*options: Option) -> RecoveryConfig:
    """Build a RecoveryConfig from the defaults and the given options, in order."""
    config = RecoveryConfig()
    for option in options:
        option(config)
    return config


# ─── Options ─────────────────────────────────────────────────────────────────


def content_type(val: str) -> Option:
    """Set the Content-Type of the error response."""
    def apply(config: RecoveryConfig) -> None:
        config.content_type = val
    return apply


def response_status(val: int) -> Option:
    """Set the HTTP status of the error response."""
    def apply(config: RecoveryConfig) -> None:
        config.response_status = val
    return apply


def stack_size(val: int) -> Option:
    """Set the traceback capture budget in bytes.

    Values at or below MINIMUM_STACK_SIZE are ignored and leave the current
    budget in place.
    """
    def apply(config: RecoveryConfig) -> None:
        if val <= MINIMUM_STACK_SIZE:
            return
        config.stack_size = val
    return apply


def logger(val: Logger) -> Option:
    """Set the sink used for diagnostic records."""
    def apply(config: RecoveryConfig) -> None:
        config.logger = val
    return apply


def error_handler(fn: ErrorHandler) -> Option:
    """Replace the terminal error handler."""
    def apply(config: RecoveryConfig) -> None:
        config.error_handler = fn
    return apply
