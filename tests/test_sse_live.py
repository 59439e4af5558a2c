"""Real SSE connections against the app served by uvicorn on an ephemeral port."""

import asyncio
from contextlib import asynccontextmanager

import pytest
import uvicorn
from fastmcp import Client
from fastmcp.client.transports import SSETransport

from conftest import FORECAST_HOST, GEOCODING_HOST, MANILA, current_payload, geocoding_payload, respond
from open_meteo_mcp.config import settings
from open_meteo_mcp.infrastructure import observability
from open_meteo_mcp.infrastructure.observability import ObservabilityManager
from open_meteo_mcp.servers.tool_registry import McpServersRegistry
from open_meteo_mcp.transports.session_registry import SessionRegistry
from open_meteo_mcp.transports.sse_app import create_sse_app


@asynccontextmanager
async def serve(app):
    server = uvicorn.Server(
        uvicorn.Config(app, host="127.0.0.1", port=0, log_level="warning", lifespan="on")
    )
    task = asyncio.create_task(server.serve())
    while not server.started:
        if task.done():
            task.result()
        await asyncio.sleep(0.01)

    port = server.servers[0].sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        server.should_exit = True
        await asyncio.wait_for(task, timeout=10)


async def eventually(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        assert loop.time() < deadline, "condition not reached in time"
        await asyncio.sleep(0.02)


@pytest.fixture
def manila(fake_api, installed_client):
    fake_api.on(GEOCODING_HOST, respond(200, geocoding_payload(MANILA)))
    fake_api.on(FORECAST_HOST, respond(200, current_payload()))
    return fake_api


@pytest.fixture
def sessions() -> SessionRegistry:
    return SessionRegistry(idle_timeout=60, sweep_interval=30)


@pytest.fixture
def tool_session_ids(monkeypatch):
    """Enable tracing and record the baggage session id seen by every tool span."""
    monkeypatch.setattr(settings, "AGENT_OBSERVABILITY_ENABLED", True)
    monkeypatch.setattr(observability, "_observability_manager", None)

    seen = []
    create_span = ObservabilityManager.create_span

    def recording_create_span(self, name, kind=None, attributes=None):
        seen.append(ObservabilityManager.current_session_id())
        return create_span(self, name, kind=kind, attributes=attributes)

    monkeypatch.setattr(ObservabilityManager, "create_span", recording_create_span)
    return seen


@pytest.mark.asyncio
async def test_stream_registers_serves_tools_and_unregisters(manila, sessions, tool_session_ids):
    app = create_sse_app(McpServersRegistry(), sessions)

    async with serve(app) as base_url:
        async with Client(SSETransport(f"{base_url}/sse")) as client:
            assert len(sessions) == 1
            (session_id,) = list(sessions)

            result = await client.call_tool(
                "get_current_weather", {"city": "Manila", "country": "PH"}
            )

            assert result.structured_content["location"] == "Manila, PH"
            assert tool_session_ids == [session_id]

        await eventually(lambda: len(sessions) == 0)


@pytest.mark.asyncio
async def test_concurrent_streams_get_separate_sessions(manila, sessions):
    app = create_sse_app(McpServersRegistry(), sessions)

    async with serve(app) as base_url:
        async with Client(SSETransport(f"{base_url}/sse")) as first:
            async with Client(SSETransport(f"{base_url}/sse")) as second:
                assert len(sessions) == 2

                results = await asyncio.gather(
                    first.call_tool("get_current_weather", {"city": "Manila"}),
                    second.call_tool("get_weather_alerts", {"city": "Manila"}),
                )

                assert results[0].structured_content["location"] == "Manila, PH"
                assert "alerts" in results[1].structured_content

            await eventually(lambda: len(sessions) == 1)

        await eventually(lambda: len(sessions) == 0)
