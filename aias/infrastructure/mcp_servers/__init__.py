"""
MCP Servers Package

Architectural Intent:
- Contains the tool server exposing gateway capabilities
- Tools = operations invoked by name
- Resources = read operations (queries)
"""

from aias.infrastructure.mcp_servers.gateway_server import (
    ToolServer,
    ToolError,
    create_gateway_server,
    Tool,
    Resource,
)
from aias.infrastructure.mcp_servers.stdio_transport import run_stdio

__all__ = [
    "ToolServer",
    "ToolError",
    "create_gateway_server",
    "Tool",
    "Resource",
    "run_stdio",
]
