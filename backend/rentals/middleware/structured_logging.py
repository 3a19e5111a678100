# backend/rentals/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import settings

log = logging.getLogger("rentals.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request:
      request_id, user_email, method, path, status_code, latency_ms

    Runs inside RequestIDMiddleware, so request.state.request_id is set.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()

        # In jwt mode the principal is resolved inside handlers; the dev header
        # is good enough for the access line.
        user_email = request.headers.get(settings.dev_header_user_email)
        request_id: Optional[str] = getattr(request.state, "request_id", None)

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            latency_ms = int((time.perf_counter() - t0) * 1000)
            log.info(
                "http_request",
                extra={
                    "event": "http_request",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "query": str(request.url.query) if request.url.query else "",
                    "status_code": status_code,
                    "latency_ms": latency_ms,
                    "user_email": user_email,
                },
            )
