"""
Open-Meteo HTTP client.

Wraps the endpoints the tools need:
- GET /v1/search    (geocoding-api)  place name -> coordinates and timezone
- GET /v1/forecast  (api)            current, hourly and daily data
- GET /v1/archive   (archive-api)    historical daily data

Every request goes through fetch_json, so transient failures are retried
with exponential backoff and terminal ones are raised immediately.
"""

from __future__ import annotations

import asyncio
from datetime import date

import httpx
from loguru import logger

from open_meteo_mcp.clients.errors import (
    InvalidUpstreamDataError,
    LocationNotFoundError,
)
from open_meteo_mcp.clients.http_retry import RetryPolicy, Sleep, fetch_json
from open_meteo_mcp.config import settings
from open_meteo_mcp.schemas.weather import GeocodedLocation

CURRENT_FIELDS = ",".join([
    "temperature_2m",
    "relative_humidity_2m",
    "apparent_temperature",
    "precipitation",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
])

DAILY_FORECAST_FIELDS = ",".join([
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "wind_speed_10m_max",
])

GROWING_CURRENT_FIELDS = ",".join([
    "temperature_2m",
    "relative_humidity_2m",
    "soil_temperature_0_to_7cm",
    "soil_moisture_0_to_7cm",
])

GROWING_HOURLY_FIELDS = "temperature_2m,shortwave_radiation"

ARCHIVE_DAILY_FIELDS = ",".join([
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "temperature_2m_mean",
    "precipitation_sum",
    "wind_speed_10m_max",
])

MAX_FORECAST_DAYS = 16


class OpenMeteoClient:
    """Async client for the Open-Meteo geocoding, forecast and archive APIs."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
        geocoding_url: str = settings.GEOCODING_URL,
        forecast_url: str = settings.FORECAST_URL,
        archive_url: str = settings.ARCHIVE_URL,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._client = http_client or httpx.AsyncClient(
            timeout=self._policy.timeout_seconds
        )
        self._sleep = sleep
        self._geocoding_url = geocoding_url
        self._forecast_url = forecast_url
        self._archive_url = archive_url

    async def _get(self, url: str, params: dict) -> dict:
        payload = await fetch_json(
            self._client,
            url,
            params,
            policy=self._policy,
            sleep=self._sleep,
        )
        if not isinstance(payload, dict):
            raise InvalidUpstreamDataError("Weather service returned invalid data.")
        return payload

    async def geocode(self, city: str, country: str | None = None) -> GeocodedLocation:
        """Resolve a city (optionally qualified by a country code) to one location."""
        query = f"{city}, {country}" if country else city
        logger.debug(f"Geocode: query={query!r}")

        payload = await self._get(
            self._geocoding_url,
            {"name": query, "count": 1, "language": "en", "format": "json"},
        )

        results = payload.get("results") or []
        if not results:
            raise LocationNotFoundError(f'City not found: "{city}"')

        match = results[0]
        try:
            return GeocodedLocation(
                latitude=float(match["latitude"]),
                longitude=float(match["longitude"]),
                name=match.get("name") or city,
                country=match.get("country_code") or match.get("country") or "",
                timezone=match.get("timezone") or "auto",
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidUpstreamDataError(
                f'Geocoding result for "{city}" has no usable coordinates.'
            ) from e

    async def get_current(self, location: GeocodedLocation) -> dict:
        """Current conditions for a location."""
        logger.debug(f"Current: lat={location.latitude}, lon={location.longitude}")
        payload = await self._get(
            self._forecast_url,
            {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "current": CURRENT_FIELDS,
                "timezone": location.timezone,
            },
        )
        _require_block(payload, "current")
        return payload

    async def get_daily_forecast(self, location: GeocodedLocation, days: int = 7) -> dict:
        """Daily forecast for a location (up to 16 days)."""
        days = max(1, min(days, MAX_FORECAST_DAYS))
        logger.debug(
            f"Daily forecast: lat={location.latitude}, lon={location.longitude}, days={days}"
        )
        payload = await self._get(
            self._forecast_url,
            {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "daily": DAILY_FORECAST_FIELDS,
                "timezone": location.timezone,
                "forecast_days": days,
            },
        )
        _require_block(payload, "daily")
        return payload

    async def get_growing_data(self, location: GeocodedLocation) -> dict:
        """Current soil/air conditions plus today's hourly temperature and radiation."""
        logger.debug(f"Growing data: lat={location.latitude}, lon={location.longitude}")
        payload = await self._get(
            self._forecast_url,
            {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "current": GROWING_CURRENT_FIELDS,
                "hourly": GROWING_HOURLY_FIELDS,
                "timezone": location.timezone,
                "forecast_days": 1,
            },
        )
        _require_block(payload, "current")
        _require_block(payload, "hourly")
        return payload

    async def get_archive_daily(
        self,
        location: GeocodedLocation,
        start_date: date,
        end_date: date,
    ) -> dict:
        """Historical daily aggregates between two dates, inclusive."""
        logger.debug(
            f"Archive: lat={location.latitude}, lon={location.longitude}, "
            f"{start_date.isoformat()}..{end_date.isoformat()}"
        )
        payload = await self._get(
            self._archive_url,
            {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "daily": ARCHIVE_DAILY_FIELDS,
                "timezone": location.timezone,
            },
        )
        _require_block(payload, "daily")
        return payload

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


def _require_block(payload: dict, key: str) -> None:
    if not isinstance(payload.get(key), dict):
        raise InvalidUpstreamDataError(
            f"Weather service response is missing the '{key}' block."
        )


# ---------------------------------------------------------------------------
# Lazy client singleton shared by the MCP servers
# ---------------------------------------------------------------------------

_client: OpenMeteoClient | None = None


def get_open_meteo_client() -> OpenMeteoClient:
    """Return the process-wide OpenMeteoClient (lazy-init from settings)."""
    global _client
    if _client is None:
        _client = OpenMeteoClient(
            policy=RetryPolicy(
                max_retries=settings.HTTP_MAX_RETRIES,
                timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
                backoff_base_seconds=settings.HTTP_BACKOFF_BASE_SECONDS,
            )
        )
    return _client
