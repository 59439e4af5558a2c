"""Formatting helpers for Open-Meteo forecast responses."""

from datetime import datetime, timezone

from open_meteo_mcp.clients.errors import InvalidUpstreamDataError
from open_meteo_mcp.schemas.weather import (
    CurrentConditions,
    CurrentWeatherResponse,
    ForecastDay,
    ForecastResponse,
    GeocodedLocation,
    WeatherAlertsResponse,
)

# WMO weather interpretation codes used by Open-Meteo.
WEATHER_CODES: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

EXTREME_HEAT_C = 35.0
EXTREME_COLD_C = -10.0
HIGH_WIND_KMH = 50.0
HEAVY_PRECIPITATION_MM = 20.0

NO_ALERTS = "No weather alerts at this time"


def describe_weather_code(code) -> str:
    """Map a WMO code to its description ("Unknown" for anything unmapped)."""
    try:
        return WEATHER_CODES.get(int(code), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"


def format_number(value) -> str:
    """Render a number the way the API reports it: 25.0 -> "25", 25.3 -> "25.3"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def with_unit(value, unit: str, separator: str = "") -> str:
    """Attach a unit to a measurement, or "N/A" when the API sent null."""
    if value is None:
        return "N/A"
    return f"{format_number(value)}{separator}{unit}"


def _series(block: dict, key: str) -> list:
    values = block.get(key)
    if not isinstance(values, list):
        raise InvalidUpstreamDataError(f"Weather service response is missing '{key}'.")
    return values


def format_current_conditions(current: dict) -> CurrentConditions:
    return CurrentConditions(
        temperature=with_unit(current.get("temperature_2m"), "°C"),
        feels_like=with_unit(current.get("apparent_temperature"), "°C"),
        humidity=with_unit(current.get("relative_humidity_2m"), "%"),
        precipitation=with_unit(current.get("precipitation"), "mm", " "),
        weather=describe_weather_code(current.get("weather_code")),
        wind_speed=with_unit(current.get("wind_speed_10m"), "km/h", " "),
        wind_direction=with_unit(current.get("wind_direction_10m"), "°"),
    )


def format_current_weather(location: GeocodedLocation, data: dict) -> CurrentWeatherResponse:
    """Format an Open-Meteo `current` response into a CurrentWeatherResponse model."""
    current = data["current"]
    return CurrentWeatherResponse(
        location=location.label,
        timezone=location.timezone,
        current=format_current_conditions(current),
        time=current.get("time"),
    )


def format_forecast(location: GeocodedLocation, data: dict, days: int) -> ForecastResponse:
    """Format an Open-Meteo `daily` response into a ForecastResponse model."""
    daily = data["daily"]
    dates = _series(daily, "time")
    codes = _series(daily, "weather_code")
    max_temps = _series(daily, "temperature_2m_max")
    min_temps = _series(daily, "temperature_2m_min")
    precipitation = _series(daily, "precipitation_sum")
    wind = _series(daily, "wind_speed_10m_max")

    forecast = [
        ForecastDay(
            date=day,
            weather=describe_weather_code(code),
            temperature_max=with_unit(t_max, "°C"),
            temperature_min=with_unit(t_min, "°C"),
            precipitation=with_unit(precip, "mm", " "),
            wind_speed_max=with_unit(w, "km/h", " "),
        )
        for day, code, t_max, t_min, precip, w in zip(
            dates, codes, max_temps, min_temps, precipitation, wind
        )
    ]

    return ForecastResponse(
        location=location.label,
        timezone=location.timezone,
        forecast_days=days,
        forecast=forecast,
    )


def evaluate_alerts(current: dict) -> list[str]:
    """Derive warnings from current conditions; Open-Meteo has no alert feed."""
    alerts: list[str] = []

    temperature = current.get("temperature_2m")
    wind_speed = current.get("wind_speed_10m")
    precipitation = current.get("precipitation")
    weather = describe_weather_code(current.get("weather_code"))

    if temperature is not None:
        if temperature > EXTREME_HEAT_C:
            alerts.append("Extreme Heat Warning: Temperature exceeds 35°C")
        elif temperature < EXTREME_COLD_C:
            alerts.append("Extreme Cold Warning: Temperature below -10°C")

    if wind_speed is not None and wind_speed > HIGH_WIND_KMH:
        alerts.append("High Wind Warning: Wind speeds exceed 50 km/h")

    if precipitation is not None and precipitation > HEAVY_PRECIPITATION_MM:
        alerts.append("Heavy Precipitation Warning: Significant rainfall detected")

    if "thunderstorm" in weather.lower():
        alerts.append("Thunderstorm Warning: Severe weather conditions")

    return alerts


def format_alerts(
    location: GeocodedLocation,
    data: dict,
    checked_at: datetime | None = None,
) -> WeatherAlertsResponse:
    """Format current conditions plus derived warnings into a WeatherAlertsResponse."""
    current = data["current"]
    checked_at = checked_at or datetime.now(timezone.utc)
    alerts = evaluate_alerts(current)

    return WeatherAlertsResponse(
        location=location.label,
        checked_at=checked_at.isoformat(),
        current_conditions=format_current_conditions(current),
        alerts=alerts or [NO_ALERTS],
    )
