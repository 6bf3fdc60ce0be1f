"""
Weather Schemas
===============
Request/response models for ``POST /api/v1/weather`` plus the subset of
the OpenWeatherMap current-weather payload the service reads. The raw
OpenWeatherMap shapes are internal and never returned to clients.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class WeatherRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


# ---------------------------------------------------------------------------
# OpenWeatherMap response (subset)
# ---------------------------------------------------------------------------


class OpenWeatherCondition(BaseModel):
    description: str = ""
    icon: Optional[str] = None


class OpenWeatherMain(BaseModel):
    temp: float


class OpenWeatherResponse(BaseModel):
    name: str = ""
    weather: list[OpenWeatherCondition] = []
    main: OpenWeatherMain


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


class WeatherResponse(BaseModel):
    city: str
    weather: str        # "Light rain, Mist"
    temperature: str    # "12°"
    icon: str           # icon image URL
