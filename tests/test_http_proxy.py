import asyncio

import pytest
from starlette.testclient import TestClient

from conftest import FORECAST_HOST, GEOCODING_HOST, MANILA, current_payload, geocoding_payload, respond
from open_meteo_mcp.servers.tool_registry import McpServersRegistry
from open_meteo_mcp.transports.http_proxy import create_proxy_app


@pytest.fixture
def proxy(installed_client):
    registry = McpServersRegistry()
    asyncio.run(registry.initialize())
    app = create_proxy_app(registry.get_registry(), timeout_seconds=5)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def manila(fake_api):
    fake_api.on(GEOCODING_HOST, respond(200, geocoding_payload(MANILA)))
    fake_api.on(FORECAST_HOST, respond(200, current_payload()))
    return fake_api


def test_health(proxy):
    assert proxy.get("/health").json() == {"status": "ok", "mcp_server": "running"}


def test_docs_list_rest_endpoints(proxy):
    endpoints = proxy.get("/").json()["endpoints"]

    assert endpoints["current"].startswith("GET /weather/current")
    assert endpoints["generic"].startswith("POST /call-tool")


def test_current_weather(proxy, manila):
    response = proxy.get("/weather/current", params={"city": "Manila", "country": "PH"})

    assert response.status_code == 200
    body = response.json()
    assert body["location"] == "Manila, PH"
    assert body["current"]["temperature"] == "31.2°C"
    assert manila.requests_to(GEOCODING_HOST)[0].url.params["name"] == "Manila, PH"


def test_missing_city_is_400(proxy, fake_api):
    response = proxy.get("/weather/current")

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required parameter: city"}
    assert fake_api.requests == []


def test_historical_requires_month(proxy):
    response = proxy.get("/weather/historical", params={"city": "Manila"})

    assert response.status_code == 400
    assert "month" in response.json()["error"]


def test_non_numeric_days_is_400(proxy):
    response = proxy.get("/weather/forecast", params={"city": "Manila", "days": "soon"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid value for days")


def test_tool_failure_is_500(proxy, fake_api):
    fake_api.on(GEOCODING_HOST, respond(200, {"results": []}))

    response = proxy.get("/weather/alerts", params={"city": "Atlantis"})

    assert response.status_code == 500
    assert 'City not found: "Atlantis"' in response.json()["error"]


def test_call_tool_wraps_result_in_jsonrpc(proxy, manila):
    response = proxy.post(
        "/call-tool",
        json={"name": "get_current_weather", "arguments": {"city": "Manila"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["jsonrpc"] == "2.0"
    assert body["result"]["isError"] is False
    assert body["result"]["structuredContent"]["location"] == "Manila, PH"
    assert body["result"]["content"][0]["type"] == "text"


def test_call_tool_reports_tool_errors(proxy):
    response = proxy.post("/call-tool", json={"name": "no_such_tool", "arguments": {}})

    assert response.status_code == 200
    assert response.json()["result"]["isError"] is True


def test_call_tool_rejects_malformed_body(proxy):
    response = proxy.post("/call-tool", content=b"not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == -32603


def test_default_proxy_spawns_stdio_server():
    with TestClient(create_proxy_app(timeout_seconds=30)) as client:
        health = client.get("/health")
        forecast = client.get("/weather/forecast", params={"city": "Manila", "days": "99"})
        call = client.post(
            "/call-tool",
            json={"name": "get_weather_forecast", "arguments": {"city": "Manila", "days": 99}},
        )

    assert health.json() == {"status": "ok", "mcp_server": "running"}
    assert forecast.status_code == 500
    assert call.status_code == 200
    assert call.json()["result"]["isError"] is True
