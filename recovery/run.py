"""Programmatic uvicorn entry point for the recovery service.

Usage:
    python -m recovery.run
    recovery-server            # via pyproject.toml [project.scripts]

Binding host and port come from the loaded config (127.0.0.1:8080 by default,
RECOVERY_PORT overrides the port).
"""

from __future__ import annotations

import uvicorn

from recovery.config import load_config

# Maximum number of concurrent connections accepted by uvicorn.
UVICORN_LIMIT_CONCURRENCY: int = 100

# HTTP keep-alive timeout in seconds.
UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    """Start the recovery service.

    Raises:
        SystemExit: Propagated from load_config() on config parse errors.
    """
    config = load_config()

    uvicorn.run(
        "recovery.main:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        limit_concurrency=UVICORN_LIMIT_CONCURRENCY,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()
