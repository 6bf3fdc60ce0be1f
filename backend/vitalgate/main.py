"""
VitalGate API
=============
FastAPI application entry point. Mount routers and error handlers here.

Middleware, outermost first:
    CORS → request size limit → request context → Accept: JSON → response stamp
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vitalgate.config import get_settings
from vitalgate.core.exceptions import ValidationException
from vitalgate.core.context import RequestContextMiddleware
from vitalgate.core.logging_config import configure_logging
from vitalgate.core.middleware import (
    AcceptJsonMiddleware,
    RequestSizeLimitMiddleware,
    ResponseStampMiddleware,
)
from vitalgate.routers import auth, body_stats, health, status as status_router, weather

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="VitalGate API",
    description="Health Connect companion backend: auth, body stats, health ingestion, weather",
    version=settings.app_version,
    docs_url="/api/docs" if settings.environment != "production" else None,
    redoc_url="/api/redoc" if settings.environment != "production" else None,
)

# add_middleware wraps the current stack, so register innermost first
app.add_middleware(ResponseStampMiddleware, entity=settings.api_entity)
app.add_middleware(AcceptJsonMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.include_router(auth.router)
app.include_router(body_stats.router)
app.include_router(health.router)
app.include_router(weather.router)
app.include_router(status_router.router)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message, "errors": exc.errors},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await validation_exception_handler(request, ValidationException.from_error_list(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Starlette's own 404 for an unmatched path carries the plain "Not Found" detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"status": False, "error": "Route not found"},
        )

    if isinstance(exc.detail, dict):
        message = exc.detail.get("message", "Request failed")
        code = exc.detail.get("code")
    else:
        message, code = str(exc.detail), None

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message, "code": code},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = "Internal Server Error"
    if settings.environment != "production" and str(exc):
        message = str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"status": "error", "statusCode": 500, "message": message},
    )
