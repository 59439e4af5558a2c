from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Open-Meteo endpoints ---
    GEOCODING_URL: str = Field(
        default="https://geocoding-api.open-meteo.com/v1/search",
        description="Open-Meteo geocoding search endpoint.",
    )
    FORECAST_URL: str = Field(
        default="https://api.open-meteo.com/v1/forecast",
        description="Open-Meteo forecast endpoint (current, hourly, daily).",
    )
    ARCHIVE_URL: str = Field(
        default="https://archive-api.open-meteo.com/v1/archive",
        description="Open-Meteo historical archive endpoint.",
    )

    # --- Outbound HTTP ---
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Per-attempt timeout for upstream requests.",
    )
    HTTP_MAX_RETRIES: int = Field(
        default=3,
        ge=1,
        description="Total number of attempts for one upstream request.",
    )
    HTTP_BACKOFF_BASE_SECONDS: float = Field(
        default=1.0,
        ge=0,
        description="Backoff unit; attempt n waits 2**n times this value.",
    )

    # --- SSE session registry ---
    SESSION_IDLE_TIMEOUT_SECONDS: float = Field(
        default=1800.0,
        gt=0,
        description="Idle time after which an SSE session is swept.",
    )
    SESSION_SWEEP_INTERVAL_SECONDS: float = Field(
        default=300.0,
        gt=0,
        description="Interval between idle-session sweeps.",
    )

    # --- HTTP proxy ---
    PROXY_TOOL_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for a single tool call made by the REST proxy.",
    )

    # --- Listener ---
    HOST: str = Field(
        default="0.0.0.0",
        description="Bind address for the network transports.",
    )
    PORT: int | None = Field(
        default=None,
        description="Bind port; each transport has its own default when unset.",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Minimum loguru level written to stderr.",
    )

    # --- Observability ---
    OTEL_SERVICE_NAME: str = Field(
        default="open-meteo-mcp",
        description="Service name reported on OpenTelemetry spans.",
    )
    AGENT_OBSERVABILITY_ENABLED: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing of tool invocations.",
    )


settings = Settings()
