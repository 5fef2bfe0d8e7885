"""Root test configuration for the recovery middleware.

Clears RECOVERY_* environment variables and the logging request-id context so
config and logging tests never see state from the developer's shell or from a
previous test. Also provides a minimal ASGI harness (scope, receive, recorded
send) for driving the middleware without an HTTP client.
"""

from __future__ import annotations

import io
from typing import Any

import pytest

from recovery.utils.logger import clear_request_id, new_logger

_RECOVERY_ENV_VARS = (
    "RECOVERY_CONFIG",
    "RECOVERY_PORT",
    "RECOVERY_RESPONSE_STATUS",
    "RECOVERY_STACK_SIZE",
)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove RECOVERY_* overrides and reset the request-id context."""
    for name in _RECOVERY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_request_id()


@pytest.fixture()
def log_buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def buffer_logger(log_buffer: io.StringIO) -> Any:
    """Diagnostic logger writing untimestamped lines into ``log_buffer``."""
    return new_logger(log_buffer, timestamps=False)


class SendRecorder:
    """ASGI ``send`` stand-in that keeps every message."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    @property
    def start(self) -> dict[str, Any]:
        return next(m for m in self.messages if m["type"] == "http.response.start")

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.messages if m["type"] == "http.response.body")

    def header(self, name: str) -> str | None:
        wanted = name.lower().encode("latin-1")
        for key, value in self.start["headers"]:
            if key.lower() == wanted:
                return value.decode("latin-1")
        return None


async def receive_empty() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


def make_scope(scope_type: str = "http", path: str = "/hello") -> dict[str, Any]:
    return {
        "type": scope_type,
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": [],
        "client": ("127.0.0.1", 12345),
        "server": ("testserver", 80),
    }


@pytest.fixture()
def recorder() -> SendRecorder:
    return SendRecorder()
