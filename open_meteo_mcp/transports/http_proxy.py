"""
REST proxy in front of the MCP server.

Exposes each weather tool as a plain ``GET /weather/...`` endpoint plus a
generic ``POST /call-tool``. Requests are forwarded through a FastMCP client
that, by default, spawns the stdio server as a subprocess; tests hand in the
FastMCP server itself for an in-memory connection.
"""

from __future__ import annotations

import json
import os
import sys
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import Client, FastMCP
from fastmcp.client.transports import StdioTransport
from loguru import logger
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from open_meteo_mcp.config import settings

VERSION = "1.0.0"
JSONRPC_INTERNAL_ERROR = -32603


class BadRequest(ValueError):
    """A REST parameter was missing or malformed."""


def create_stdio_transport() -> StdioTransport:
    """Spawn ``python -m open_meteo_mcp stdio`` with the current interpreter."""
    env = os.environ.copy()
    env.setdefault("PYTHONUNBUFFERED", "1")
    return StdioTransport(
        command=sys.executable,
        args=["-m", "open_meteo_mcp", "stdio"],
        env=env,
        keep_alive=True,
    )


def _result_payload(result: Any) -> Any:
    """Prefer structured content; fall back to the JSON text block."""
    if result.structured_content is not None:
        return result.structured_content

    texts = [block.text for block in result.content if getattr(block, "text", None) is not None]
    if len(texts) == 1:
        try:
            return json.loads(texts[0])
        except json.JSONDecodeError:
            return texts[0]
    return texts


def _error_text(result: Any) -> str:
    for block in result.content:
        text = getattr(block, "text", None)
        if text:
            return text
    return "Unknown error"


def _required(request: Request, *names: str) -> dict[str, str]:
    missing = [name for name in names if not request.query_params.get(name)]
    if missing:
        noun = "parameter" if len(missing) == 1 else "parameters"
        raise BadRequest(f"Missing required {noun}: {', '.join(missing)}")
    return {name: request.query_params[name] for name in names}


def _optional_number(request: Request, name: str, cast: type) -> Any:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        raise BadRequest(f"Invalid value for {name}: {raw!r}") from None


class ToolProxy:
    """Forwards tool calls to an MCP server through a connected FastMCP client."""

    def __init__(self, client: Client, timeout_seconds: float) -> None:
        self._client = client
        self._timeout = timeout_seconds

    @asynccontextmanager
    async def connected(self):
        async with self._client:
            logger.info("[HTTP Proxy] MCP server ready")
            yield self

    async def call(self, name: str, arguments: dict[str, Any]) -> Any:
        return await self._client.call_tool(
            name,
            arguments,
            timeout=self._timeout,
            raise_on_error=False,
        )


def create_proxy_app(
    target: FastMCP | StdioTransport | None = None,
    timeout_seconds: float | None = None,
) -> Starlette:
    """Build the REST proxy app; ``target`` defaults to a spawned stdio server."""
    client = Client(target if target is not None else create_stdio_transport())
    proxy = ToolProxy(
        client,
        timeout_seconds=timeout_seconds or settings.PROXY_TOOL_TIMEOUT_SECONDS,
    )

    async def forward(tool_name: str, arguments: dict[str, Any]) -> JSONResponse:
        try:
            result = await proxy.call(tool_name, arguments)
        except Exception as e:
            logger.error(f"[HTTP Proxy] {tool_name} failed: {e}")
            return JSONResponse({"error": str(e)}, status_code=500)

        if result.is_error:
            return JSONResponse({"error": _error_text(result)}, status_code=500)
        return JSONResponse(_result_payload(result))

    def rest_endpoint(tool_name: str, build_arguments):
        async def endpoint(request: Request) -> JSONResponse:
            try:
                arguments = build_arguments(request)
            except BadRequest as e:
                return JSONResponse({"error": str(e)}, status_code=400)
            logger.info(f"[HTTP Proxy] {tool_name} {arguments}")
            return await forward(tool_name, arguments)

        return endpoint

    def location_args(request: Request) -> dict[str, Any]:
        arguments: dict[str, Any] = dict(_required(request, "city"))
        if request.query_params.get("country"):
            arguments["country"] = request.query_params["country"]
        return arguments

    def forecast_args(request: Request) -> dict[str, Any]:
        arguments = location_args(request)
        days = _optional_number(request, "days", int)
        if days is not None:
            arguments["days"] = days
        return arguments

    def growing_args(request: Request) -> dict[str, Any]:
        arguments = location_args(request)
        base_temp = _optional_number(request, "baseTemp", float)
        if base_temp is not None:
            arguments["base_temp"] = base_temp
        return arguments

    def historical_args(request: Request) -> dict[str, Any]:
        required = _required(request, "city", "month")
        arguments: dict[str, Any] = {"city": required["city"]}
        arguments["month"] = _optional_number(request, "month", int)
        if request.query_params.get("country"):
            arguments["country"] = request.query_params["country"]
        years_back = _optional_number(request, "yearsBack", int)
        if years_back is not None:
            arguments["years_back"] = years_back
        return arguments

    async def call_tool(request: Request) -> JSONResponse:
        try:
            body = await request.json()
            name = body["name"]
            arguments = body.get("arguments") or {}
        except (ValueError, KeyError, TypeError, AttributeError):
            return JSONResponse(
                {"error": {"code": JSONRPC_INTERNAL_ERROR, "message": "Body must be {name, arguments}"}},
                status_code=500,
            )

        logger.info(f"[HTTP Proxy] Calling MCP tool: {name} {arguments}")
        try:
            result = await proxy.call(name, arguments)
        except Exception as e:
            logger.error(f"[HTTP Proxy] {name} failed: {e}")
            return JSONResponse(
                {"error": {"code": JSONRPC_INTERNAL_ERROR, "message": str(e)}},
                status_code=500,
            )

        return JSONResponse({
            "jsonrpc": "2.0",
            "result": {
                "content": [
                    block.model_dump(mode="json", exclude_none=True) for block in result.content
                ],
                "structuredContent": result.structured_content,
                "isError": result.is_error,
            },
        })

    async def docs(request: Request) -> JSONResponse:
        return JSONResponse({
            "name": "Weather MCP HTTP Proxy",
            "version": VERSION,
            "endpoints": {
                "health": "GET /health",
                "current": "GET /weather/current?city=<city>&country=<code>",
                "forecast": "GET /weather/forecast?city=<city>&days=<1-16>&country=<code>",
                "alerts": "GET /weather/alerts?city=<city>&country=<code>",
                "growing": "GET /weather/growing?city=<city>&baseTemp=<°C>&country=<code>",
                "historical": (
                    "GET /weather/historical?city=<city>&month=<1-12>"
                    "&yearsBack=<1-10>&country=<code>"
                ),
                "generic": "POST /call-tool (body: {name, arguments})",
            },
            "examples": {
                "current": "/weather/current?city=Manila&country=PH",
                "forecast": "/weather/forecast?city=Manila&days=7",
                "growing": "/weather/growing?city=Manila&baseTemp=10",
            },
        })

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "mcp_server": "running"})

    @asynccontextmanager
    async def lifespan(app: Starlette):
        async with proxy.connected():
            yield

    return Starlette(
        routes=[
            Route("/", endpoint=docs, methods=["GET"]),
            Route("/health", endpoint=health, methods=["GET"]),
            Route("/weather/current", endpoint=rest_endpoint("get_current_weather", location_args), methods=["GET"]),
            Route("/weather/forecast", endpoint=rest_endpoint("get_weather_forecast", forecast_args), methods=["GET"]),
            Route("/weather/alerts", endpoint=rest_endpoint("get_weather_alerts", location_args), methods=["GET"]),
            Route("/weather/growing", endpoint=rest_endpoint("get_growing_conditions", growing_args), methods=["GET"]),
            Route(
                "/weather/historical",
                endpoint=rest_endpoint("get_historical_weather", historical_args),
                methods=["GET"],
            ),
            Route("/call-tool", endpoint=call_tool, methods=["POST"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["Content-Type"],
            ),
        ],
        lifespan=lifespan,
    )
