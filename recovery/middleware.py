"""Panic recovery middleware.

Wraps an ASGI application so that an exception escaping a request handler is
turned into a well-formed HTTP response instead of a dropped connection:

    app = FastAPI()
    app.add_middleware(RecoverMiddleware, response_status(503))

or, composing by hand:

    app = recover(content_type("application/problem+json"))(app)

Per request the guard is transparent unless the inner application raises. On
an exception it builds a diagnostic message, captures a byte-bounded
traceback, strips the lines describing the guard itself, and hands everything
to ``config.error_handler`` exactly once. Failures inside the error handler
are not caught here; they propagate to the server.

Only ``http`` scopes are guarded. ``websocket`` and ``lifespan`` scopes pass
through unchanged. ``BaseException``s that are not ``Exception``s (task
cancellation, KeyboardInterrupt) are never intercepted.
"""

from __future__ import annotations

import dataclasses
import traceback
from typing import Callable, Optional

from starlette.types import ASGIApp, Receive, Scope, Send

from recovery.constants import (
    INTERCEPTION_FRAME_LINES,
    MIN_FORMATTED_FRAME_BYTES,
    PANIC_PREFIX,
    UNKNOWN_PANIC_MESSAGE,
    UNPRINTABLE_ERROR_TEXT,
)
from recovery.errors import Panic
from recovery.policy import Option, RecoveryConfig, new_config
from recovery.writer import ResponseWriter


def describe_panic(exc: BaseException) -> str:
    """Classify the carried value of a recovered exception into a message.

    Panic carrying a str → "panic: <value>"
    Panic carrying an exception, or any other exception → "panic: <str(error)>"
    Panic carrying anything else → "unknown panic"

    An error whose str() raises is described as "panic: <exception str() failed>".
    """
    value = exc.value if isinstance(exc, Panic) else exc
    if isinstance(value, str):
        return PANIC_PREFIX + value
    if isinstance(value, BaseException):
        try:
            text = str(value)
        except Exception:
            text = UNPRINTABLE_ERROR_TEXT
        return PANIC_PREFIX + text
    return UNKNOWN_PANIC_MESSAGE


def capture_trace(exc: BaseException, size: int, skip: int = 0) -> list[str]:
    """Format the traceback of ``exc`` into at most ``size`` bytes of lines.

    Args:
        exc:  The recovered exception.
        size: Byte budget for the UTF-8 traceback text. Formatting stops as
              soon as the budget is reached; the text is cut at that byte.
        skip: Leading traceback entries to omit (the caller's own frames).

    Returns:
        Traceback text split on newlines, without a trailing empty line.
    """
    tb = exc.__traceback__
    for _ in range(skip):
        if tb is None:
            break
        tb = tb.tb_next

    # Frames past what the budget can display are never extracted, and source
    # lines are read lazily while formatting.
    summary = traceback.TracebackException(
        type(exc),
        exc,
        tb,
        limit=size // MIN_FORMATTED_FRAME_BYTES + 1,
        lookup_lines=False,
    )
    buf = bytearray()
    for chunk in summary.format():
        data = chunk.encode("utf-8", "replace")
        room = size - len(buf)
        if len(data) >= room:
            buf += data[:room]
            break
        buf += data

    text = buf.decode("utf-8", "ignore")
    if text.endswith("\n"):
        text = text[:-1]
    return text.split("\n")


def trim_trace(lines: list[str], count: int = INTERCEPTION_FRAME_LINES) -> list[str]:
    """Drop the first ``count`` lines, unless there are no more than ``count``."""
    if len(lines) > count:
        return lines[count:]
    return lines


class RecoverMiddleware:
    """ASGI middleware recovering exceptions raised by the wrapped application.

    Args:
        app:     Inner ASGI application.
        options: Policy options applied to the defaults, in order.
        config:  Pre-built RecoveryConfig. Options, if also given, are applied
                 to a copy of it.
    """

    def __init__(
        self,
        app: ASGIApp,
        *options: Option,
        config: Optional[RecoveryConfig] = None,
    ) -> None:
        self.app = app
        if config is None:
            self.config = new_config(*options)
        elif options:
            self.config = dataclasses.replace(config)
            for option in options:
                option(self.config)
        else:
            self.config = config

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        writer = ResponseWriter(send)
        try:
            await self.app(scope, receive, writer.send)
        except Exception as exc:
            message = describe_panic(exc)
            # skip=1 drops this frame from the traceback
            trace = trim_trace(capture_trace(exc, self.config.stack_size, skip=1))
        else:
            return

        await self.config.error_handler(self.config, writer, message, trace)
        await writer.finish()


def recover(*options: Option) -> Callable[[ASGIApp], ASGIApp]:
    """Build a guard factory: ``recover(*options)(app)`` wraps ``app``.

    The config is built once here and shared by every application wrapped by
    the returned factory.
    """
    config = new_config(*options)

    def wrap(app: ASGIApp) -> ASGIApp:
        return RecoverMiddleware(app, config=config)

    return wrap
