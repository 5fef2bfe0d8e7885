"""Request correlation middleware.

Assigns every HTTP request an id (the client's ``X-Request-ID`` when present,
otherwise a fresh ULID), binds it to the logging context so diagnostic records
carry ``request_id=...``, and echoes it on the response. Error responses
written by RecoverMiddleware carry the header too, which ties a client-visible
500 to the logged traceback.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from recovery.utils.logger import clear_request_id, set_request_id
from recovery.utils.ulid import generate_ulid

REQUEST_ID_HEADER = "X-Request-ID"

# Longest client-supplied id accepted verbatim
_MAX_CLIENT_ID_LENGTH = 128


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the logging context for the request's lifetime.

    Register it after RecoverMiddleware so it runs outermost:
        application.add_middleware(RecoverMiddleware)
        application.add_middleware(RequestIdMiddleware)
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id or len(request_id) > _MAX_CLIENT_ID_LENGTH:
            request_id = generate_ulid()

        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_id()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
