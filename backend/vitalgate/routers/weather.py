"""
Weather Router
==============
POST /api/v1/weather   current weather for {lat, lon} (auth)

Coordinates are forwarded to OpenWeatherMap; nothing about the user is.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from vitalgate.db.entities import User
from vitalgate.models.common import ApiResponse
from vitalgate.models.weather import WeatherRequest, WeatherResponse
from vitalgate.routers.deps import get_current_user
from vitalgate.services.weather import WeatherAPIError, WeatherConfigError, WeatherService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/weather", tags=["weather"])


@router.post(
    "",
    response_model=ApiResponse[WeatherResponse],
    summary="Current weather",
    responses={
        502: {"description": "OpenWeatherMap request failed"},
        503: {"description": "Weather lookups are not configured"},
    },
)
async def get_weather(
    body: WeatherRequest,
    user: User = Depends(get_current_user),
) -> ApiResponse[WeatherResponse]:
    try:
        service = WeatherService()
    except WeatherConfigError as exc:
        logger.error("Weather requested but %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": "Weather service is not configured", "code": "weather_unavailable"},
        ) from exc

    try:
        weather = await service.get_weather(body.lat, body.lon)
    except WeatherAPIError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": "Failed to fetch weather data", "code": "weather_upstream_error"},
        ) from exc
    return ApiResponse(data=weather)
