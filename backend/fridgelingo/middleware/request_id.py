"""
FridgeLingo Backend — Request ID Middleware
============================================

What:  Assigns a short correlation id to every request.
How:   Reuses the client's X-Request-ID header if sent, otherwise generates
       one; stores it in a ContextVar and echoes it in the response.
Who:   Read by the access log and by every exception handler in main.py.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. X-Request-ID from the client wins (the mobile app can tag a photo
           upload and quote the id in bug reports)
        2. Otherwise the first 8 characters of a UUID4
        3. Exposed as request_id_var, request.state.request_id and the
           X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
