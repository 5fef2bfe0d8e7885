"""FastAPI application factory + lifespan for the recovery service.

This module implements:
  - create_app() — testable application factory
  - lifespan — @asynccontextmanager startup/shutdown logging and ready flag
  - /health router — delegated to recovery/health.py
  - /        route — service discovery root
  - app = create_app() — module-level instance for uvicorn

Middleware stack (outermost first):
  RequestIdMiddleware → RecoverMiddleware → routes

Business routes are mounted by the embedding application; anything they raise
is answered by RecoverMiddleware according to the loaded recovery policy.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.routing import APIRouter

from recovery.config import Config, load_config
from recovery.health import router as health_router
from recovery.middleware import RecoverMiddleware
from recovery.policy import Logger, new_config
from recovery.request_id import RequestIdMiddleware
from recovery.utils.logger import configure_logging, get_logger

# ─── Logging Setup ────────────────────────────────────────────────────────────
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)

root_router = APIRouter(tags=["root"])


@root_router.get("/")
async def root() -> dict[str, str]:
    """Root endpoint — service identity / discovery."""
    return {
        "service": "recovery",
        "health": "/health",
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Mark the app ready on startup and not-ready on shutdown."""
    config: Config = app.state.config
    logger.info(
        "Recovery service starting",
        host=config.server.host,
        port=config.server.port,
        response_status=config.recovery.response_status,
        expose_trace=config.recovery.expose_trace,
    )
    app.state.ready = True

    yield

    app.state.ready = False
    logger.info("Recovery service shutdown complete")


def create_app(config: Optional[Config] = None, log: Optional[Logger] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Loaded configuration; ``load_config()`` is called when None.
        log:    Diagnostic sink for recovered panics; the policy default
                (timestamped lines on stderr) when None.

    Returns:
        FastAPI application with the request-id and recovery middleware installed.
    """
    if config is None:
        config = load_config()

    application = FastAPI(
        title="Recovery Service",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if DEBUG else None,
        redoc_url="/redoc" if DEBUG else None,
        openapi_url="/openapi.json" if DEBUG else None,
    )
    application.state.ready = False
    application.state.config = config

    # Built once here so /health reports exactly what the middleware uses.
    recovery_config = new_config(*config.recovery.to_options(log))
    application.state.recovery_config = recovery_config

    # NOTE: In Starlette, the LAST-added middleware is OUTERMOST (runs first).
    application.add_middleware(RecoverMiddleware, config=recovery_config)
    application.add_middleware(RequestIdMiddleware)

    application.include_router(root_router)
    application.include_router(health_router)

    return application

