"""Growing-degree-day arithmetic and historical aggregation for the agriculture tools."""

import calendar
from datetime import date

from open_meteo_mcp.clients.errors import InvalidUpstreamDataError
from open_meteo_mcp.schemas.agriculture import (
    GrowingConditionsResponse,
    GrowingCurrentConditions,
    GrowingMetrics,
    HistoricalWeatherResponse,
    HistoricalYear,
    MonthlyStatistics,
)
from open_meteo_mcp.schemas.weather import GeocodedLocation
from open_meteo_mcp.utils.weather_formatters import format_number, with_unit

HOURS_PER_DAY = 24


def _present(values: list) -> list[float]:
    """Drop the nulls Open-Meteo uses for missing samples."""
    return [float(v) for v in values if v is not None]


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def growing_degree_days(hourly_temperatures: list, base_temp: float) -> float:
    """Daily GDD: mean of the first 24 hourly temperatures above ``base_temp``, floored at 0."""
    temps = _present(hourly_temperatures[:HOURS_PER_DAY])
    if not temps:
        raise InvalidUpstreamDataError("No hourly temperatures available for today.")
    return max(0.0, _mean(temps) - base_temp)


def mean_solar_radiation(hourly_radiation: list) -> float:
    values = _present(hourly_radiation[:HOURS_PER_DAY])
    if not values:
        raise InvalidUpstreamDataError("No solar radiation data available for today.")
    return _mean(values)


def format_growing_conditions(
    location: GeocodedLocation,
    data: dict,
    base_temp: float,
) -> GrowingConditionsResponse:
    """Format current soil/air data and hourly series into a GrowingConditionsResponse."""
    current = data["current"]
    hourly = data["hourly"]

    gdd = growing_degree_days(hourly.get("temperature_2m") or [], base_temp)
    radiation = mean_solar_radiation(hourly.get("shortwave_radiation") or [])

    return GrowingConditionsResponse(
        location=location.label,
        timezone=location.timezone,
        current_conditions=GrowingCurrentConditions(
            air_temperature=with_unit(current.get("temperature_2m"), "°C"),
            relative_humidity=with_unit(current.get("relative_humidity_2m"), "%"),
            soil_temperature=with_unit(current.get("soil_temperature_0_to_7cm"), "°C"),
            soil_moisture=with_unit(current.get("soil_moisture_0_to_7cm"), "m³/m³", " "),
        ),
        growing_metrics=GrowingMetrics(
            growing_degree_days=f"{gdd:.2f} GDD (base {format_number(base_temp)}°C)",
            avg_solar_radiation=f"{radiation:.2f} W/m²",
            description=(
                "Conditions favorable for plant growth"
                if gdd > 0
                else "Temperature below growing threshold"
            ),
        ),
        measured_at=current.get("time"),
    )


# ---------------------------------------------------------------------------
# Historical
# ---------------------------------------------------------------------------


def month_name(month: int) -> str:
    return calendar.month_name[month]


def month_date_range(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def history_years(years_back: int, today: date | None = None) -> list[int]:
    """Completed years to query, most recent first (last year, the one before...)."""
    current_year = (today or date.today()).year
    return [current_year - 1 - i for i in range(years_back)]


def summarize_month(daily: dict) -> tuple[MonthlyStatistics, int]:
    """Reduce one month of archive daily data to statistics and a day count."""
    means = _present(daily.get("temperature_2m_mean") or [])
    maxima = _present(daily.get("temperature_2m_max") or [])
    minima = _present(daily.get("temperature_2m_min") or [])
    precipitation = _present(daily.get("precipitation_sum") or [])
    wind = _present(daily.get("wind_speed_10m_max") or [])

    if not (means and maxima and minima):
        raise InvalidUpstreamDataError("Archive returned no temperature data for this month.")

    statistics = MonthlyStatistics(
        avg_temperature=f"{_mean(means):.1f}°C",
        max_temperature=f"{max(maxima):.1f}°C",
        min_temperature=f"{min(minima):.1f}°C",
        total_precipitation=f"{sum(precipitation):.1f} mm",
        avg_wind_speed=f"{_mean(wind):.1f} km/h" if wind else "N/A",
    )
    days = len(daily.get("time") or daily.get("temperature_2m_mean") or [])
    return statistics, days


def format_historical_year(year: int, month: int, data: dict) -> HistoricalYear:
    statistics, days = summarize_month(data["daily"])
    return HistoricalYear(
        year=year,
        month=month_name(month),
        statistics=statistics,
        days_in_month=days,
    )


def format_historical(
    location: GeocodedLocation,
    month: int,
    years: list[HistoricalYear],
) -> HistoricalWeatherResponse:
    return HistoricalWeatherResponse(
        location=location.label,
        timezone=location.timezone,
        month=month_name(month),
        years_retrieved=len(years),
        historical_data=years,
    )
