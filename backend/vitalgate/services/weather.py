"""
Weather Service
===============
Current-weather lookups against the OpenWeatherMap REST API, reduced to
the small card the app shows on its home screen:

    {"city": "Lisbon", "weather": "Clear sky", "temperature": "21°",
     "icon": "https://openweathermap.org/img/wn/01d.png"}
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import httpx

from vitalgate.config import get_settings
from vitalgate.models.weather import OpenWeatherResponse, WeatherResponse

logger = logging.getLogger(__name__)

ICON_BASE_URL = "https://openweathermap.org/img/wn"
DEFAULT_ICON = "01d"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class WeatherConfigError(Exception):
    """No OpenWeatherMap API key configured."""


class WeatherAPIError(Exception):
    """Non-2xx response (or transport failure) from OpenWeatherMap."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"OpenWeatherMap error {status_code}: {body}")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class WeatherService:
    def __init__(self, api_key: Optional[str] = None) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.open_weather_api_key
        self._base_url = settings.open_weather_base_url
        self._timeout = settings.open_weather_timeout_seconds

        if not self._api_key:
            raise WeatherConfigError("OPEN_WEATHER_API_KEY is not configured")

    async def get_weather(self, lat: float, lon: float) -> WeatherResponse:
        raw = await self._get({"lat": lat, "lon": lon, "appid": self._api_key, "units": "metric"})
        return to_weather_response(OpenWeatherResponse.model_validate(raw))

    async def _get(self, params: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._base_url, params=params)
        except httpx.HTTPError as exc:
            logger.error("OpenWeatherMap request failed: %s", exc)
            raise WeatherAPIError(0, str(exc)) from exc

        if not response.is_success:
            logger.error("OpenWeatherMap returned %d", response.status_code)
            raise WeatherAPIError(response.status_code, response.text)
        return response.json()


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _capitalise_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def to_weather_response(data: OpenWeatherResponse) -> WeatherResponse:
    icon = (data.weather[0].icon if data.weather else None) or DEFAULT_ICON
    return WeatherResponse(
        city=data.name,
        weather=", ".join(_capitalise_first(w.description) for w in data.weather),
        temperature=f"{math.floor(data.main.temp)}°",
        icon=f"{ICON_BASE_URL}/{icon}.png",
    )
