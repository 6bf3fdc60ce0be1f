"""
Request Context
===============
Makes the current request reachable from anywhere below the router
(services, log records) without threading it through every call.

``RequestContextMiddleware`` stores a ``RequestContext`` in a ContextVar
for the lifetime of each HTTP request and echoes the request id back in
the ``X-Request-ID`` response header. ``current_request()`` raises when
called outside a request.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Optional
from uuid import uuid4

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass(frozen=True)
class RequestContext:
    request: Request
    request_id: str

    def query_param(self, key: str, default: Any = None) -> Any:
        return self.request.query_params.get(key, default)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.request.headers.get(name.lower(), default)

    def filters(self) -> Optional[str]:
        return self.query_param("filters")

    def page(self) -> int:
        return _positive_int(self.query_param("page"), 1)

    def limit(self) -> int:
        return _positive_int(self.query_param("limit"), 10)


_current: ContextVar[Optional[RequestContext]] = ContextVar("vitalgate_request", default=None)


def current_request() -> RequestContext:
    ctx = _current.get()
    if ctx is None:
        raise RuntimeError("Request context not found")
    return ctx


def current_request_id() -> Optional[str]:
    ctx = _current.get()
    return ctx.request_id if ctx else None


def _positive_int(raw: Any, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class RequestContextMiddleware:
    """Pure ASGI middleware binding a RequestContext per HTTP request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        request_id = request.headers.get(REQUEST_ID_HEADER.lower()) or uuid4().hex
        token = _current.set(RequestContext(request=request, request_id=request_id))

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(REQUEST_ID_HEADER, request_id)
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            _current.reset(token)


class RequestIdLogFilter(logging.Filter):
    """Adds ``request_id`` to every log record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id() or "-"
        return True
