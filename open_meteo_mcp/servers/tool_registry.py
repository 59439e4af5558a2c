"""
MCP Tool Registry.

Aggregates the weather and agriculture servers into a single FastMCP
instance. Sub-servers are mounted without a prefix so tools keep their
public names (get_current_weather, get_weather_forecast, ...).
Initializes observability on startup.
"""

from fastmcp import FastMCP
from loguru import logger

from open_meteo_mcp.config import settings
from open_meteo_mcp.infrastructure.observability import initialize_observability
from open_meteo_mcp.servers.agriculture_server import agriculture_mcp
from open_meteo_mcp.servers.weather_server import weather_mcp

SERVER_NAME = "weather-mcp-server"


class McpServersRegistry:
    def __init__(self) -> None:
        self.registry = FastMCP(SERVER_NAME)
        self._is_initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    async def initialize(self) -> None:
        """Mount all MCP servers into the registry. Safe to call more than once."""
        if self._is_initialized:
            return

        logger.info("Initializing MCP tool registry...")

        # --- Initialize observability ---
        try:
            initialize_observability(
                service_name=settings.OTEL_SERVICE_NAME,
                enabled=settings.AGENT_OBSERVABILITY_ENABLED,
            )
        except Exception:
            logger.exception(
                "Observability initialization failed. "
                "Tracing will be disabled."
            )

        # --- Mount servers ---
        self.registry.mount(weather_mcp)
        self.registry.mount(agriculture_mcp)

        self._is_initialized = True

        tools = await self.registry.get_tools()
        logger.info(f"Registry initialized with {len(tools)} tools: {sorted(tools)}")

    def get_registry(self) -> FastMCP:
        return self.registry
