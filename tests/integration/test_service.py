"""Integration tests for recovery/main.py — the FastAPI service factory.

  - create_app() installs RecoverMiddleware from the loaded config
  - request ids: X-Request-ID on responses, request_id in diagnostic records
  - /health gated on lifespan readiness, reports the effective policy
  - expose_trace → diagnostic returned in the response body
"""

from __future__ import annotations

import io

from fastapi import FastAPI
from starlette.testclient import TestClient

from recovery.config import Config, RecoverySettings
from recovery.errors import Panic
from recovery.main import create_app
from recovery.request_id import REQUEST_ID_HEADER
from recovery.utils.logger import new_logger


def _app_with_failing_route(config: Config, buf: io.StringIO) -> FastAPI:
    app = create_app(config=config, log=new_logger(buf, timestamps=False))

    @app.get("/boom")
    async def boom() -> dict:
        raise Panic("kaboom")

    @app.get("/ok")
    async def ok() -> dict:
        return {"ok": True}

    return app


class TestCreateApp:
    def test_failing_route_gets_policy_response(self) -> None:
        buf = io.StringIO()
        app = _app_with_failing_route(Config.defaults(), buf)

        with TestClient(app) as client:
            response = client.get("/boom")

        assert response.status_code == 500
        assert response.headers["content-type"] == "application/json"
        assert response.content == b""
        first_line = buf.getvalue().splitlines()[0]
        assert first_line == f"request_id={response.headers[REQUEST_ID_HEADER]} panic: kaboom"

    def test_configured_status(self) -> None:
        buf = io.StringIO()
        config = Config(recovery=RecoverySettings(response_status=503, content_type="text/plain"))
        app = _app_with_failing_route(config, buf)

        with TestClient(app) as client:
            response = client.get("/boom")

        assert response.status_code == 503
        assert response.headers["content-type"] == "text/plain"

    def test_expose_trace_returns_diagnostic_body(self) -> None:
        buf = io.StringIO()
        config = Config(recovery=RecoverySettings(expose_trace=True))
        app = _app_with_failing_route(config, buf)

        with TestClient(app) as client:
            response = client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"].startswith("panic: kaboom\n")
        assert buf.getvalue() == ""


class TestRequestId:
    def test_generated_id_links_response_and_log(self) -> None:
        buf = io.StringIO()
        app = _app_with_failing_route(Config.defaults(), buf)

        with TestClient(app) as client:
            response = client.get("/boom")

        request_id = response.headers[REQUEST_ID_HEADER]
        assert len(request_id) == 26
        assert f"request_id={request_id}" in buf.getvalue()
        trace_lines = buf.getvalue().splitlines()[1:]
        assert trace_lines
        assert not any("request_id=" in line for line in trace_lines)

    def test_client_id_is_echoed(self) -> None:
        app = _app_with_failing_route(Config.defaults(), io.StringIO())

        with TestClient(app) as client:
            response = client.get("/ok", headers={REQUEST_ID_HEADER: "abc-123"})

        assert response.status_code == 200
        assert response.headers[REQUEST_ID_HEADER] == "abc-123"

    def test_oversized_client_id_is_replaced(self) -> None:
        app = _app_with_failing_route(Config.defaults(), io.StringIO())

        with TestClient(app) as client:
            response = client.get("/ok", headers={REQUEST_ID_HEADER: "x" * 500})

        assert len(response.headers[REQUEST_ID_HEADER]) == 26


class TestHealth:
    def test_not_ready_before_lifespan(self) -> None:
        app = create_app(config=Config.defaults())
        response = TestClient(app).get("/health")
        assert response.status_code == 503

    def test_reports_policy(self) -> None:
        config = Config(recovery=RecoverySettings(response_status=502, stack_size=8192))
        app = create_app(config=config)

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["recovery"] == {
            "content_type": "application/json",
            "response_status": 502,
            "stack_size": 8192,
            "error_handler": "default_error_handler",
        }

    def test_root(self) -> None:
        with TestClient(create_app(config=Config.defaults())) as client:
            assert client.get("/").json()["health"] == "/health"
