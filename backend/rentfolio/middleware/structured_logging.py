# backend/rentfolio/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("rentfolio.request")

QUIET_PATHS = frozenset({"/api/health"})


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log record per API call: method, path, status, latency, and the acting
    user when get_principal resolved one. 5xx responses log at ERROR, 4xx at
    WARNING. Health probes are not logged.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            if request.url.path not in QUIET_PATHS:
                level = logging.ERROR if status_code >= 500 else logging.WARNING if status_code >= 400 else logging.INFO
                log.log(
                    level,
                    "%s %s -> %s",
                    request.method,
                    request.url.path,
                    status_code,
                    extra={
                        "event": "http_request",
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": status_code,
                        "latency_ms": round((time.perf_counter() - started) * 1000, 1),
                        "user_id": getattr(request.state, "user_id", None),
                        "role": getattr(request.state, "role", None),
                    },
                )
