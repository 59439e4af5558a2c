"""
Agriculture MCP Server.

Self-contained FastMCP instance with growing-condition and historical
climate tools. Mounted into the registry via tool_registry.py.
"""

from datetime import date
from typing import Annotated

from fastmcp import FastMCP
from loguru import logger
from pydantic import Field

from open_meteo_mcp.clients.open_meteo_client import OpenMeteoClient, get_open_meteo_client
from open_meteo_mcp.infrastructure.trace_decorator import traced
from open_meteo_mcp.schemas.agriculture import (
    GrowingConditionsResponse,
    HistoricalWeatherResponse,
)
from open_meteo_mcp.servers.tool_errors import upstream_errors
from open_meteo_mcp.utils.agriculture_formatters import (
    format_growing_conditions,
    format_historical,
    format_historical_year,
    history_years,
    month_date_range,
)

agriculture_mcp = FastMCP("agriculture")

City = Annotated[str, Field(min_length=1, description="City name (e.g. 'Manila').")]
Country = Annotated[str | None, Field(description="Optional country code (e.g. 'PH').")]


def _get_client() -> OpenMeteoClient:
    return get_open_meteo_client()


def _today() -> date:
    return date.today()


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------


@agriculture_mcp.tool(
    title="Get Growing Conditions",
    description=(
        "Get current growing conditions including Growing Degree Days (GDD), "
        "solar radiation, humidity, and soil metrics. Used to predict crop "
        "development stages and optimize growing conditions."
    ),
    tags={"agriculture", "gdd", "soil", "weather"},
    annotations={
        "title": "Get Growing Conditions",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@traced(span_name="mcp.tool.get_growing_conditions", handler_type="tool")
async def get_growing_conditions(
    city: City,
    country: Country = None,
    base_temp: Annotated[
        float,
        Field(description="Base temperature for GDD in °C (10°C suits many crops)."),
    ] = 10.0,
) -> GrowingConditionsResponse:
    """Get today's growing degree days, solar radiation and soil conditions.

    Args:
        city: City name.
        country: Optional country code.
        base_temp: Base temperature for the GDD calculation in °C (default 10).
    """
    client = _get_client()
    with upstream_errors("get_growing_conditions"):
        location = await client.geocode(city, country)
        data = await client.get_growing_data(location)
        return format_growing_conditions(location, data, base_temp)


@agriculture_mcp.tool(
    title="Get Historical Weather",
    description=(
        "Retrieve historical weather data for a specific month over multiple years. "
        "Returns monthly statistics including average, max, and min temperatures, "
        "total precipitation, and average wind speed. Defaults to the past year; "
        "up to 10 years are available."
    ),
    tags={"agriculture", "historical", "climate", "weather"},
    annotations={
        "title": "Get Historical Weather",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@traced(span_name="mcp.tool.get_historical_weather", handler_type="tool")
async def get_historical_weather(
    city: City,
    month: Annotated[int, Field(ge=1, le=12, description="Month number (1=January, 12=December).")],
    country: Country = None,
    years_back: Annotated[int, Field(ge=1, le=10, description="Years back to retrieve (1-10).")] = 1,
) -> HistoricalWeatherResponse:
    """Get monthly climate statistics for previous years.

    Args:
        city: City name.
        month: Month number (1-12).
        country: Optional country code.
        years_back: Number of past years to retrieve (1-10, default 1).
    """
    client = _get_client()
    with upstream_errors("get_historical_weather"):
        location = await client.geocode(city, country)

        years = []
        for year in history_years(years_back, today=_today()):
            start, end = month_date_range(year, month)
            logger.debug(f"Historical {location.label}: {start.isoformat()}..{end.isoformat()}")
            data = await client.get_archive_daily(location, start, end)
            years.append(format_historical_year(year, month, data))

        return format_historical(location, month, years)
