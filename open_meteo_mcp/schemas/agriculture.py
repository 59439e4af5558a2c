"""Pydantic models for the growing-conditions and historical tools."""

from pydantic import BaseModel, Field


class GrowingCurrentConditions(BaseModel):
    air_temperature: str = Field(description="Air temperature at 2 m.")
    relative_humidity: str = Field(description="Relative humidity at 2 m.")
    soil_temperature: str = Field(description="Soil temperature at 0-7 cm.")
    soil_moisture: str = Field(description="Volumetric soil moisture at 0-7 cm.")


class GrowingMetrics(BaseModel):
    growing_degree_days: str = Field(description="Growing degree days for today and the base used.")
    avg_solar_radiation: str = Field(description="Mean shortwave radiation over today.")
    description: str = Field(description="Whether temperatures support plant growth.")


class GrowingConditionsResponse(BaseModel):
    location: str = Field(description="Resolved location as 'Name, CC'.")
    timezone: str = Field(description="Timezone of the location.")
    current_conditions: GrowingCurrentConditions = Field(description="Current air and soil conditions.")
    growing_metrics: GrowingMetrics = Field(description="Derived crop development metrics.")
    measured_at: str | None = Field(None, description="Local time of the current measurement.")


class MonthlyStatistics(BaseModel):
    avg_temperature: str = Field(description="Mean of the daily mean temperatures.")
    max_temperature: str = Field(description="Highest daily maximum of the month.")
    min_temperature: str = Field(description="Lowest daily minimum of the month.")
    total_precipitation: str = Field(description="Sum of daily precipitation.")
    avg_wind_speed: str = Field(description="Mean of the daily maximum wind speeds.")


class HistoricalYear(BaseModel):
    year: int = Field(description="Calendar year of the statistics.")
    month: str = Field(description="Month name (e.g. March).")
    statistics: MonthlyStatistics = Field(description="Aggregated monthly statistics.")
    days_in_month: int = Field(description="Number of days the archive returned.")


class HistoricalWeatherResponse(BaseModel):
    location: str = Field(description="Resolved location as 'Name, CC'.")
    timezone: str = Field(description="Timezone of the location.")
    month: str = Field(description="Month name (e.g. March).")
    years_retrieved: int = Field(description="Number of years requested.")
    historical_data: list[HistoricalYear] = Field(description="One entry per year, most recent first.")
