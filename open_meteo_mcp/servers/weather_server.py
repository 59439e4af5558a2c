"""
Weather MCP Server.

Self-contained FastMCP instance with the Open-Meteo current conditions,
forecast and alert tools. Mounted into the registry via tool_registry.py.
"""

from typing import Annotated

from fastmcp import FastMCP
from pydantic import Field

from open_meteo_mcp.clients.open_meteo_client import OpenMeteoClient, get_open_meteo_client
from open_meteo_mcp.infrastructure.trace_decorator import traced
from open_meteo_mcp.schemas.weather import (
    CurrentWeatherResponse,
    ForecastResponse,
    WeatherAlertsResponse,
)
from open_meteo_mcp.servers.tool_errors import upstream_errors
from open_meteo_mcp.utils.weather_formatters import (
    format_alerts,
    format_current_weather,
    format_forecast,
)

weather_mcp = FastMCP("weather")

City = Annotated[str, Field(min_length=1, description="City name (e.g. 'London', 'Tokyo', 'New York').")]
Country = Annotated[
    str | None,
    Field(description="Optional country code for disambiguation (e.g. 'US', 'GB', 'PH')."),
]


def _get_client() -> OpenMeteoClient:
    return get_open_meteo_client()


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------


@weather_mcp.tool(
    title="Get Current Weather",
    description=(
        "Get real-time current weather conditions for any city worldwide. "
        "Returns temperature, feels-like temperature, humidity, precipitation, "
        "weather description, and wind information."
    ),
    tags={"weather", "current", "conditions"},
    annotations={
        "title": "Get Current Weather",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@traced(span_name="mcp.tool.get_current_weather", handler_type="tool")
async def get_current_weather(
    city: City,
    country: Country = None,
) -> CurrentWeatherResponse:
    """Get current weather conditions for a city.

    Args:
        city: City name (e.g. "Manila").
        country: Optional country code (e.g. "PH").
    """
    client = _get_client()
    with upstream_errors("get_current_weather"):
        location = await client.geocode(city, country)
        data = await client.get_current(location)
        return format_current_weather(location, data)


@weather_mcp.tool(
    title="Get Weather Forecast",
    description=(
        "Get weather forecast for up to 16 days. Returns daily predictions including "
        "max/min temperatures, precipitation, weather conditions, and wind speeds. "
        "Use this when planning trips, events, or field work."
    ),
    tags={"weather", "forecast", "planning"},
    annotations={
        "title": "Get Weather Forecast",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@traced(span_name="mcp.tool.get_weather_forecast", handler_type="tool")
async def get_weather_forecast(
    city: City,
    country: Country = None,
    days: Annotated[int, Field(ge=1, le=16, description="Number of forecast days (1-16).")] = 7,
) -> ForecastResponse:
    """Get a daily weather forecast for a city.

    Args:
        city: City name.
        country: Optional country code.
        days: Number of forecast days (1-16, default 7).
    """
    client = _get_client()
    with upstream_errors("get_weather_forecast"):
        location = await client.geocode(city, country)
        data = await client.get_daily_forecast(location, days=days)
        return format_forecast(location, data, days)


@weather_mcp.tool(
    title="Get Weather Alerts",
    description=(
        "Check for weather warnings and alerts based on current conditions. "
        "Detects extreme temperatures, high winds, heavy precipitation, "
        "and severe weather like thunderstorms."
    ),
    tags={"weather", "alerts", "warnings"},
    annotations={
        "title": "Get Weather Alerts",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@traced(span_name="mcp.tool.get_weather_alerts", handler_type="tool")
async def get_weather_alerts(
    city: City,
    country: Country = None,
) -> WeatherAlertsResponse:
    """Derive weather warnings from the current conditions of a city.

    Args:
        city: City name.
        country: Optional country code.
    """
    client = _get_client()
    with upstream_errors("get_weather_alerts"):
        location = await client.geocode(city, country)
        data = await client.get_current(location)
        return format_alerts(location, data)
