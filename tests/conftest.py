"""Shared fixtures: a fake Open-Meteo behind httpx.MockTransport and payload builders."""

from __future__ import annotations

import httpx
import pytest

from open_meteo_mcp.clients import open_meteo_client
from open_meteo_mcp.clients.http_retry import RetryPolicy
from open_meteo_mcp.clients.open_meteo_client import OpenMeteoClient

GEOCODING_HOST = "geocoding-api.open-meteo.com"
FORECAST_HOST = "api.open-meteo.com"
ARCHIVE_HOST = "archive-api.open-meteo.com"

MANILA = {
    "id": 1701668,
    "name": "Manila",
    "latitude": 14.6042,
    "longitude": 120.9822,
    "country": "Philippines",
    "country_code": "PH",
    "timezone": "Asia/Manila",
}


# ---------------------------------------------------------------------------
# Response factories
# ---------------------------------------------------------------------------


def respond(status: int = 200, payload=None, text: str | None = None):
    def factory(request: httpx.Request) -> httpx.Response:
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=payload if payload is not None else {})

    return factory


def timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


def connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def geocoding_payload(*results: dict) -> dict:
    return {"results": list(results), "generationtime_ms": 0.5}


def current_payload(**overrides) -> dict:
    current = {
        "time": "2025-06-15T14:00",
        "interval": 900,
        "temperature_2m": 31.2,
        "relative_humidity_2m": 70,
        "apparent_temperature": 37.5,
        "precipitation": 0.2,
        "weather_code": 2,
        "wind_speed_10m": 12.1,
        "wind_direction_10m": 180,
    }
    current.update(overrides)
    return {"latitude": 14.6, "longitude": 121.0, "timezone": "Asia/Manila", "current": current}


def daily_forecast_payload(days: int = 3) -> dict:
    return {
        "timezone": "Asia/Manila",
        "daily": {
            "time": [f"2025-06-{15 + i:02d}" for i in range(days)],
            "weather_code": [61] * days,
            "temperature_2m_max": [32.4] * days,
            "temperature_2m_min": [25.0] * days,
            "precipitation_sum": [4.5] * days,
            "wind_speed_10m_max": [18.3] * days,
        },
    }


def growing_payload(hourly_temp: float = 20.0, radiation: float = 400.0) -> dict:
    return {
        "timezone": "Asia/Manila",
        "current": {
            "time": "2025-06-15T14:00",
            "temperature_2m": 30.1,
            "relative_humidity_2m": 68,
            "soil_temperature_0_to_7cm": 29.4,
            "soil_moisture_0_to_7cm": 0.31,
        },
        "hourly": {
            "time": [f"2025-06-15T{h:02d}:00" for h in range(24)],
            "temperature_2m": [hourly_temp] * 24,
            "shortwave_radiation": [radiation] * 24,
        },
    }


def archive_payload(days: int = 28, mean: float = 27.0) -> dict:
    return {
        "timezone": "Asia/Manila",
        "daily": {
            "time": [f"day-{i}" for i in range(days)],
            "weather_code": [1] * days,
            "temperature_2m_max": [mean + 5] * (days - 1) + [mean + 7],
            "temperature_2m_min": [mean - 5] * (days - 1) + [mean - 6],
            "temperature_2m_mean": [mean] * days,
            "precipitation_sum": [1.0] * days,
            "wind_speed_10m_max": [10.0] * days,
        },
    }


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeOpenMeteo:
    """MockTransport handler routing by host.

    Each host has a queue of response factories; the last one repeats once the
    queue is down to a single entry.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, list] = {}

    def on(self, host: str, *factories) -> FakeOpenMeteo:
        self.routes.setdefault(host, []).extend(factories)
        return self

    def count(self, host: str) -> int:
        return sum(1 for request in self.requests if request.url.host == host)

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(request.url.host)
        if not queue:
            return httpx.Response(404, json={"error": True, "reason": "no route"})
        factory = queue.pop(0) if len(queue) > 1 else queue[0]
        return factory(request)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_api() -> FakeOpenMeteo:
    return FakeOpenMeteo()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def meteo_client(fake_api, sleeper) -> OpenMeteoClient:
    return OpenMeteoClient(
        policy=RetryPolicy(max_retries=3, timeout_seconds=10.0, backoff_base_seconds=1.0),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_api)),
        sleep=sleeper,
    )


@pytest.fixture
def installed_client(monkeypatch, meteo_client) -> OpenMeteoClient:
    """Make the MCP tools use the fake-backed client."""
    monkeypatch.setattr(open_meteo_client, "_client", meteo_client)
    return meteo_client
