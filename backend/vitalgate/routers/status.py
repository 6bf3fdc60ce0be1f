"""
Status Router
=============
GET /api/v1/status   liveness probe with the running version
"""

from fastapi import APIRouter

from vitalgate.config import get_settings

router = APIRouter(prefix="/api/v1/status", tags=["status"])


@router.get("")
async def status() -> dict:
    settings = get_settings()
    return {"engine": "running", "version": settings.app_version, "app": settings.app_name}
