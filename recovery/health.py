"""Health endpoint for the recovery service.

GET /health returns 503 until the lifespan marks the app ready, 200 after.
The body reports the effective recovery policy so operators can confirm what
a failing request will receive.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Primary health check endpoint."""
    if not getattr(request.app.state, "ready", False):
        raise HTTPException(status_code=503, detail={"status": "starting"})

    policy = request.app.state.recovery_config
    return {
        "status": "ok",
        "recovery": {
            "content_type": policy.content_type,
            "response_status": policy.response_status,
            "stack_size": policy.stack_size,
            "error_handler": getattr(policy.error_handler, "__name__", repr(policy.error_handler)),
        },
    }
