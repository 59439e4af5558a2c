"""Conversion of upstream failures into MCP tool errors."""

from contextlib import contextmanager

from fastmcp.exceptions import ToolError
from loguru import logger

from open_meteo_mcp.clients.errors import OpenMeteoError


@contextmanager
def upstream_errors(tool_name: str):
    """Re-raise any OpenMeteoError as a ToolError so the client gets isError=true."""
    try:
        yield
    except OpenMeteoError as e:
        logger.error(f"{tool_name} failed: {type(e).__name__}: {e}")
        raise ToolError(str(e)) from e
