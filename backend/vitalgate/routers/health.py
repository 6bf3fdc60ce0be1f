"""
Health Ingestion Router
=======================
POST /api/v1/health/{permission}   batch of device samples for one permission
GET  /api/v1/health/permissions    supported permissions, value fields, units

Samples come from the device health store via the mobile client. The
body schema depends on the permission in the path, so the payload is
validated here rather than by FastAPI's body parsing.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from vitalgate.core.exceptions import ValidationException
from vitalgate.db.entities import User
from vitalgate.models.common import ApiResponse
from vitalgate.models.health import PERMISSIONS, IngestResult, PermissionInfo, batch_model
from vitalgate.routers.deps import get_current_user
from vitalgate.services.health import HealthService, UnsupportedPermissionError
from vitalgate.validation import validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/permissions", response_model=ApiResponse[list[PermissionInfo]], summary="Supported permissions")
async def list_permissions(
    service: HealthService = Depends(HealthService),
) -> ApiResponse[list[PermissionInfo]]:
    return ApiResponse(data=service.permissions())


@router.post(
    "/{permission}",
    response_model=ApiResponse[IngestResult],
    status_code=status.HTTP_200_OK,
    summary="Ingest device samples",
    responses={
        401: {"description": "Authentication required"},
        422: {"description": "Unknown permission or invalid samples"},
    },
)
async def ingest(
    permission: str,
    payload: Any = Body(...),
    user: User = Depends(get_current_user),
    service: HealthService = Depends(HealthService),
) -> ApiResponse[IngestResult]:
    if permission not in PERMISSIONS:
        raise ValidationException.for_field(
            "permission", f"permission must be one of: {', '.join(PERMISSIONS)}"
        )
    batch = validate(batch_model(permission), payload)

    try:
        result = service.store(user.id, permission, batch.data)
    except UnsupportedPermissionError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "code": "unsupported_permission"},
        ) from exc
    return ApiResponse(data=result)
