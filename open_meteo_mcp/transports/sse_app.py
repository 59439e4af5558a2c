"""
SSE transport with session-routed messages.

Every ``GET /sse`` gets its own session id and its own SDK
``SseServerTransport`` whose message endpoint is ``/message/{session_id}``.
The pair is stored in a SessionRegistry; ``POST /message/{session_id}`` looks
the session up (refreshing its activity) and hands the request to that
transport. Closing the stream removes the session; idle sessions are swept.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import uuid4

from loguru import logger
from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from open_meteo_mcp.infrastructure.observability import get_observability_manager
from open_meteo_mcp.servers.tool_registry import McpServersRegistry
from open_meteo_mcp.transports.session_registry import SessionRegistry

MESSAGE_PATH = "/message"
VERSION = "1.0.0"


class SessionMessageRouter:
    """ASGI endpoint delivering a POSTed JSON-RPC message to its session's transport."""

    def __init__(self, sessions: SessionRegistry) -> None:
        self._sessions = sessions

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        session_id = scope.get("path_params", {}).get("session_id", "")
        entry = self._sessions.lookup(session_id)

        if entry is None:
            logger.warning(f"[Message] Unknown or expired session {session_id}")
            response = JSONResponse({"error": "Session not found or expired"}, status_code=404)
            await response(scope, receive, send)
            return

        logger.debug(f"[Message] Routing JSON-RPC message to session {session_id}")
        await entry.transport.handle_post_message(scope, receive, send)


def create_sse_app(
    servers: McpServersRegistry,
    sessions: SessionRegistry,
) -> Starlette:
    """Build the Starlette app serving MCP over SSE with explicit session routing."""
    mcp_server = servers.get_registry()

    async def info(request: Request) -> JSONResponse:
        return JSONResponse({
            "name": "Weather MCP Server (SSE with Routing)",
            "version": VERSION,
            "transport": "Server-Sent Events",
            "endpoints": {
                "health": "GET /health",
                "sse": "GET /sse",
                "message": f"POST {MESSAGE_PATH}/{{session_id}}",
            },
            "active_connections": len(sessions),
        })

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({
            "status": "ok",
            "transport": "SSE",
            "connections": len(sessions),
        })

    async def missing_session(request: Request) -> JSONResponse:
        return JSONResponse({"error": "Missing session id"}, status_code=400)

    async def handle_sse(request: Request) -> Response:
        session_id = uuid4().hex
        transport = SseServerTransport(f"{MESSAGE_PATH}/{session_id}")
        sessions.register(session_id, transport, mcp_server)
        logger.info(f"[SSE] New connection, session {session_id}")

        low_level = mcp_server._mcp_server
        observability = get_observability_manager()
        try:
            async with transport.connect_sse(
                request.scope, request.receive, request._send
            ) as (read_stream, write_stream):
                # Tool handlers run in tasks spawned by run() and inherit this baggage.
                with observability.session_context(session_id):
                    await low_level.run(
                        read_stream,
                        write_stream,
                        low_level.create_initialization_options(),
                    )
        finally:
            logger.info(f"[SSE] Connection closed for session {session_id}")
            sessions.remove(session_id)
        return Response()

    @asynccontextmanager
    async def lifespan(app: Starlette):
        await servers.initialize()
        async with sessions:
            yield

    return Starlette(
        routes=[
            Route("/", endpoint=info, methods=["GET"]),
            Route("/health", endpoint=health, methods=["GET"]),
            Route("/sse", endpoint=handle_sse, methods=["GET"]),
            Route(MESSAGE_PATH, endpoint=missing_session, methods=["POST"]),
            Route(
                f"{MESSAGE_PATH}/{{session_id}}",
                endpoint=SessionMessageRouter(sessions),
                methods=["POST"],
            ),
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
