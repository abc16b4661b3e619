"""
FridgeLingo Backend — Access Log Middleware
============================================

What:  One log line per HTTP request: method, path, status, duration,
       request id and client address.
How:   Timed around call_next; the level follows the status class.
Who:   Every route except /health (probed too often to be useful).

Never logged: request bodies (photos) and form fields.

Typical durations:
    GET  /api/fridge/items    10-50ms
    POST /api/quiz/generate   2-8s (two or three Gemini calls)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from fridgelingo.middleware.request_id import request_id_var

logger = logging.getLogger("fridgelingo.access")

_SKIP_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log with request-id correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
