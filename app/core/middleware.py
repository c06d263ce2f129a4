from __future__ import annotations

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.context import set_request_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        """
        Sets request_id into contextvars for the lifetime of the request.

        Priority:
        1. Header: X-Request-Id
        2. Freshly generated uuid4
        """
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())

        try:
            set_request_id(request_id)
            response = await call_next(request)
            response.headers["X-Request-Id"] = request_id
            return response
        finally:
            # always clear context
            set_request_id(None)
