"""MCP surface: tool registry, tool handlers and the stdio server."""

from deepsource_mcp.mcp.registry import ToolDefinition, ToolRegistry
from deepsource_mcp.mcp.server import MCPServer, run_stdio
from deepsource_mcp.mcp.tools import build_registry

__all__ = ["MCPServer", "ToolDefinition", "ToolRegistry", "build_registry", "run_stdio"]
