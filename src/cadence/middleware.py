from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .api.schemas.common import fail

logger = logging.getLogger("cadence.api")


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, timeout_seconds: int) -> None:
        super().__init__(app)
        self._timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
        request.state.request_id = request_id
        try:
            response = await asyncio.wait_for(call_next(request), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Request timed out: %s %s", request.method, request.url.path)
            payload = fail(
                message="Request timed out.",
                error_type="TimeoutError",
                request_id=request_id,
            )
            return JSONResponse(status_code=504, content=payload, headers={"X-Request-Id": request_id})

        response.headers["X-Request-Id"] = request_id
        return response


class RequestBodyLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, max_bytes: int) -> None:
        super().__init__(app)
        self._max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        request_id = getattr(request.state, "request_id", "unknown")
        if content_length:
            try:
                size = int(content_length)
            except ValueError:
                size = 0
            if size > self._max_bytes:
                payload = fail(
                    message=f"Payload exceeds {self._max_bytes} bytes.",
                    error_type="PayloadTooLarge",
                    request_id=request_id,
                )
                return JSONResponse(status_code=413, content=payload)

        return await call_next(request)
