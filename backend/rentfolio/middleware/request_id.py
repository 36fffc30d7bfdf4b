# backend/rentfolio/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")

_request_id: ContextVar[Optional[str]] = ContextVar("rentfolio_request_id", default=None)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def _incoming_or_new(request: Request) -> str:
    # client-supplied ids end up in logs, so only accept short plain tokens
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return rid if _SAFE_ID.match(rid) else uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a request id for the duration of the request and echoes it back in X-Request-ID."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_or_new(request)
        request.state.request_id = rid
        token = _request_id.set(rid)
        try:
            response = await call_next(request)
        finally:
            _request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
