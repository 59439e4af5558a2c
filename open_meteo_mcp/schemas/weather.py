"""Pydantic models for geocoding and the weather tools."""

from pydantic import BaseModel, Field


class GeocodedLocation(BaseModel):
    latitude: float = Field(description="Latitude of the matched place.")
    longitude: float = Field(description="Longitude of the matched place.")
    name: str = Field(description="Display name of the matched place.")
    country: str = Field(description="ISO country code, or country name when no code is known.")
    timezone: str = Field(description="IANA timezone identifier (e.g. Asia/Manila).")

    @property
    def label(self) -> str:
        return f"{self.name}, {self.country}" if self.country else self.name


class CurrentConditions(BaseModel):
    temperature: str = Field(description="Air temperature at 2 m (e.g. 28.4°C).")
    feels_like: str = Field(description="Apparent temperature.")
    humidity: str = Field(description="Relative humidity at 2 m.")
    precipitation: str = Field(description="Precipitation in the current interval.")
    weather: str = Field(description="WMO weather code description.")
    wind_speed: str = Field(description="Wind speed at 10 m.")
    wind_direction: str = Field(description="Wind direction at 10 m in degrees.")


class CurrentWeatherResponse(BaseModel):
    location: str = Field(description="Resolved location as 'Name, CC'.")
    timezone: str = Field(description="Timezone of the location.")
    current: CurrentConditions = Field(description="Current conditions.")
    time: str | None = Field(None, description="Local observation time (ISO 8601).")


class ForecastDay(BaseModel):
    date: str = Field(description="Forecast date (YYYY-MM-DD).")
    weather: str = Field(description="WMO weather code description.")
    temperature_max: str = Field(description="Daily maximum temperature.")
    temperature_min: str = Field(description="Daily minimum temperature.")
    precipitation: str = Field(description="Daily precipitation sum.")
    wind_speed_max: str = Field(description="Daily maximum wind speed.")


class ForecastResponse(BaseModel):
    location: str = Field(description="Resolved location as 'Name, CC'.")
    timezone: str = Field(description="Timezone of the location.")
    forecast_days: int = Field(description="Number of days requested.")
    forecast: list[ForecastDay] = Field(description="Daily forecast entries.")


class WeatherAlertsResponse(BaseModel):
    location: str = Field(description="Resolved location as 'Name, CC'.")
    checked_at: str = Field(description="UTC time the conditions were checked (ISO 8601).")
    current_conditions: CurrentConditions = Field(description="Conditions the alerts were derived from.")
    alerts: list[str] = Field(description="Active warnings, or a single all-clear entry.")
