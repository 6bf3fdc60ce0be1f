"""
Body Stats Router
=================
PUT /api/v1/body-stats                   today's tape measurements (upsert)
GET /api/v1/body-stats/latest            latest value of every field
GET /api/v1/body-stats/today             today's record, or null
GET /api/v1/body-stats/history/{field}   one field over ?period=month|year|all

All endpoints require a Bearer access token and only ever see the
caller's own records.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from vitalgate.db.entities import BodyStats, User
from vitalgate.models.body_stats import (
    DEFAULT_PERIOD,
    PERIODS,
    BodyStatHistory,
    BodyStatsUpdate,
    LatestValue,
)
from vitalgate.models.common import ApiResponse
from vitalgate.routers.deps import get_current_user
from vitalgate.services.body_stats import BodyStatsError, BodyStatsService
from vitalgate.validation import validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/body-stats", tags=["body-stats"])


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"message": str(exc), "code": "body_stats_error"},
    )


@router.put("", response_model=ApiResponse[BodyStats], summary="Update today's body stats")
async def update_body_stats(
    payload: Any = Body(...),
    user: User = Depends(get_current_user),
    service: BodyStatsService = Depends(BodyStatsService),
) -> ApiResponse[BodyStats]:
    # Parsed by hand so unknown fields and the empty body get the same 422 shape
    body = validate(BodyStatsUpdate, payload)
    try:
        record = service.create_or_update_today(user.id, body.changes())
    except BodyStatsError as exc:
        raise _bad_request(exc) from exc
    return ApiResponse(message="Body stats updated successfully", data=record)


@router.get("/latest", response_model=ApiResponse[dict[str, LatestValue]], summary="Latest values")
async def get_latest(
    user: User = Depends(get_current_user),
    service: BodyStatsService = Depends(BodyStatsService),
) -> ApiResponse[dict[str, LatestValue]]:
    return ApiResponse(data=service.get_latest(user.id))


@router.get("/today", response_model=ApiResponse[Optional[BodyStats]], summary="Today's record")
async def get_today(
    user: User = Depends(get_current_user),
    service: BodyStatsService = Depends(BodyStatsService),
) -> ApiResponse[Optional[BodyStats]]:
    return ApiResponse(data=service.get_today(user.id))


@router.get("/history/{field}", response_model=ApiResponse[BodyStatHistory], summary="Field history")
async def get_history(
    field: str,
    period: str = Query(DEFAULT_PERIOD, description=f"One of: {', '.join(PERIODS)}"),
    user: User = Depends(get_current_user),
    service: BodyStatsService = Depends(BodyStatsService),
) -> ApiResponse[BodyStatHistory]:
    try:
        history = service.get_history(user.id, field, period)
    except BodyStatsError as exc:
        raise _bad_request(exc) from exc
    return ApiResponse(data=BodyStatHistory(field=field, period=period, history=history))
