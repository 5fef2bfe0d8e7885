"""Response writer handed to recovery error handlers.

ASGI applications answer by sending messages; error handlers are written
against a smaller surface that mirrors classic response-writer discipline:

  - ``headers``            pending response headers (mutable until sent)
  - ``write_header(code)`` send the status line + headers, once
  - ``write(body)``        send body bytes (implies a 200 status if none sent)
  - ``finish()``           complete the response

The same writer wraps the ``send`` callable given to the inner application, so
it knows whether the failing handler already started or completed the
response. Late status writes are ignored and logged, never raised.
"""

from __future__ import annotations

from typing import Optional

from starlette.datastructures import MutableHeaders
from starlette.types import Message, Send

from recovery.utils.logger import get_logger

logger = get_logger(__name__)

# Status sent when a body is written before any explicit status.
IMPLICIT_STATUS: int = 200


class ResponseWriter:
    """Track and write a single ASGI HTTP response."""

    def __init__(self, send: Send) -> None:
        self._send = send
        self.headers = MutableHeaders()
        self.status_code: Optional[int] = None
        self._started = False
        self._finished = False

    @property
    def started(self) -> bool:
        """True once ``http.response.start`` has gone out."""
        return self._started

    @property
    def finished(self) -> bool:
        """True once the final body message has gone out."""
        return self._finished

    async def send(self, message: Message) -> None:
        """ASGI ``send`` replacement; records response progress and forwards."""
        if message["type"] == "http.response.start":
            self._started = True
            self.status_code = message["status"]
        elif message["type"] == "http.response.body" and not message.get("more_body", False):
            self._finished = True
        await self._send(message)

    async def write_header(self, status_code: int) -> None:
        """Send the status line with the pending headers.

        Ignored (with a warning) when the response has already started.
        """
        if self._started:
            logger.warning(
                "Superfluous write_header call",
                status_code=status_code,
                sent_status=self.status_code,
            )
            return
        await self.send(
            {
                "type": "http.response.start",
                "status": status_code,
                "headers": list(self.headers.raw),
            }
        )

    async def write(self, body: bytes) -> int:
        """Send a body chunk and return the number of bytes written."""
        if self._finished:
            logger.warning("Write after response completed", size=len(body))
            return 0
        if not self._started:
            await self.write_header(IMPLICIT_STATUS)
        await self.send({"type": "http.response.body", "body": body, "more_body": True})
        return len(body)

    async def finish(self) -> None:
        """Complete the response, sending an implicit status if none was sent."""
        if self._finished:
            return
        if not self._started:
            await self.write_header(IMPLICIT_STATUS)
        await self.send({"type": "http.response.body", "body": b"", "more_body": False})
