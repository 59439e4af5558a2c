"""Command-line entrypoint: run the weather MCP server over the chosen transport."""

from __future__ import annotations

import argparse
import asyncio
import sys

import uvicorn
from loguru import logger

from open_meteo_mcp.config import settings
from open_meteo_mcp.servers.tool_registry import McpServersRegistry
from open_meteo_mcp.transports.http_proxy import create_proxy_app
from open_meteo_mcp.transports.session_registry import SessionRegistry
from open_meteo_mcp.transports.sse_app import create_sse_app

DEFAULT_PORTS = {
    "sse": 3003,
    "proxy": 3002,
    "http": 8000,
}
TRANSPORTS = ("stdio", "sse", "proxy", "http")


def configure_logging(level: str) -> None:
    """Single stderr sink so stdout stays reserved for the stdio transport."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} [{level}] {name}: {message}",
    )


def create_http_app(registry: McpServersRegistry):
    """Streamable HTTP ASGI app that lazily initializes the registry."""
    inner_app = registry.get_registry().http_app(stateless_http=True)

    async def app(scope, receive, send):
        if scope["type"] == "lifespan":
            await inner_app(scope, receive, send)
            return
        if not registry.is_initialized:
            await registry.initialize()
        await inner_app(scope, receive, send)

    return app


def build_app(transport: str, registry: McpServersRegistry):
    if transport == "sse":
        sessions = SessionRegistry(
            idle_timeout=settings.SESSION_IDLE_TIMEOUT_SECONDS,
            sweep_interval=settings.SESSION_SWEEP_INTERVAL_SECONDS,
        )
        return create_sse_app(registry, sessions)
    if transport == "proxy":
        return create_proxy_app()
    if transport == "http":
        return create_http_app(registry)
    raise ValueError(f"Unsupported network transport: {transport}")


def run_stdio(registry: McpServersRegistry) -> None:
    asyncio.run(registry.initialize())
    logger.info("Weather MCP Server running on stdio")
    registry.get_registry().run(transport="stdio", show_banner=False)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="open-meteo-mcp",
        description="MCP server exposing Open-Meteo weather tools.",
    )
    parser.add_argument(
        "transport",
        nargs="?",
        default="stdio",
        choices=TRANSPORTS,
        help="stdio (default), sse, proxy (REST over a stdio subprocess) or http (streamable HTTP).",
    )
    parser.add_argument("--host", default=settings.HOST, help="Bind address for network transports.")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Bind port for network transports.")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Minimum log level.")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    registry = McpServersRegistry()

    if args.transport == "stdio":
        run_stdio(registry)
        return

    port = args.port or DEFAULT_PORTS[args.transport]
    app = build_app(args.transport, registry)
    logger.info(f"Weather MCP Server ({args.transport}) on http://{args.host}:{port}")
    # uvicorn exits with status 1 itself when the listener cannot bind.
    uvicorn.run(app, host=args.host, port=port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
