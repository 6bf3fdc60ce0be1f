"""
HTTP Middleware
===============
Cross-cutting request/response handling, registered in ``vitalgate.main``:

- ``AcceptJsonMiddleware``        every request is treated as Accept: application/json
- ``RequestSizeLimitMiddleware``  413 for bodies above the configured limit
- ``ResponseStampMiddleware``     adds ``time`` (ms) and ``entity`` to JSON object bodies
"""

from __future__ import annotations

import json
import logging
import time

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

_JSON = b"application/json"


class AcceptJsonMiddleware:
    """Rewrite the Accept header so content negotiation always picks JSON."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            headers = [(k, v) for k, v in scope["headers"] if k != b"accept"]
            headers.append((b"accept", _JSON))
            scope = {**scope, "headers": headers}
        await self.app(scope, receive, send)


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies whose declared Content-Length exceeds the limit."""

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        super().__init__(app)
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_bytes:
            logger.warning(
                "Rejected %s %s: body of %s bytes exceeds %d",
                request.method,
                request.url.path,
                content_length,
                self.max_body_bytes,
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"success": False, "message": "Request body too large"},
            )
        return await call_next(request)


class ResponseStampMiddleware(BaseHTTPMiddleware):
    """Stamp JSON object responses with elapsed time and the API entity name."""

    def __init__(self, app: ASGIApp, entity: str) -> None:
        super().__init__(app)
        self.entity = entity

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        response = await call_next(request)

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("application/json"):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            payload["time"] = int((time.perf_counter() - started) * 1000)
            payload["entity"] = self.entity
            body = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

        stamped = Response(content=body, status_code=response.status_code, background=response.background)
        stamped.raw_headers = [
            (key, value) for key, value in response.raw_headers if key.lower() != b"content-length"
        ] + [(b"content-length", str(len(body)).encode("latin-1"))]
        return stamped
