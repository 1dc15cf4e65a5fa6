"""DeepSource MCP Server implementation.

This module implements the MCP server that exposes DeepSource's analysis
data through the Model Context Protocol. ``MCPServer`` owns the client and
the tool registry; ``run_stdio`` binds it to the ``mcp`` SDK's low-level
server over stdin/stdout.

stdout carries the protocol, so nothing in this process may print to it;
logging goes to stderr (see ``configure_logging``).
"""

from __future__ import annotations

from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from deepsource_mcp.client import DeepSourceClient
from deepsource_mcp.core.config import ServerConfig
from deepsource_mcp.core.logging import DeepSourceLogger, get_logger
from deepsource_mcp.mcp.registry import ToolRegistry
from deepsource_mcp.mcp.responses import ApiResponse
from deepsource_mcp.mcp.tools import build_registry


class MCPServer:
    """DeepSource MCP Server - exposes DeepSource tools via Model Context Protocol.

    Attributes:
        config: Effective server configuration.
        client: DeepSource API client shared by all tools.
        registry: Registered tools.

    Example:
        >>> server = MCPServer(load_config())
        >>> await server.initialize()
        >>> await server.call_tool("projects", {})
    """

    def __init__(
        self,
        config: ServerConfig | None = None,
        client: DeepSourceClient | None = None,
        logger: DeepSourceLogger | None = None,
    ) -> None:
        """Initialize the MCP server.

        Args:
            config: Server configuration. Defaults to ``ServerConfig()``.
            client: Pre-built client; built from ``config`` when omitted.
            logger: Root logger threaded through client and tools.

        Raises:
            ConfigurationError: If no client is given and no API key is configured.
        """
        self.config = config or ServerConfig()
        self._logger = logger or get_logger("server")

        if client is None:
            self.config.require_api_key()
            client = DeepSourceClient.from_config(self.config, self._logger.child("client"))
        self.client = client
        self.registry: ToolRegistry = build_registry(client, self._logger.child("tools"))

        self.initialized = False
        self.client_info: dict[str, Any] | None = None

    @property
    def capabilities(self) -> dict[str, Any]:
        """Server capabilities advertised during MCP negotiation."""
        return {
            "tools": {"listChanged": False},
            "logging": {},
        }

    async def initialize(self, client_info: dict[str, Any] | None = None) -> dict[str, Any]:
        """Mark the server ready and describe it to the connecting client."""
        self.client_info = client_info or {}
        self.initialized = True

        self._logger.info(
            "server_initialized",
            client=self.client_info.get("name", "unknown"),
            tools=len(self.registry),
        )

        return {
            "capabilities": self.capabilities,
            "serverInfo": {
                "name": self.config.name,
                "version": self.config.version,
            },
        }

    async def list_tools(self) -> list[dict[str, Any]]:
        """MCP tool listing (name, description, inputSchema, outputSchema).

        Raises:
            RuntimeError: If the server is not initialized.
        """
        if not self.initialized:
            raise RuntimeError("Server not initialized")
        return [definition.to_mcp() for definition in self.registry.list_tools()]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> ApiResponse:
        """Execute a tool; failures come back as ``isError`` responses.

        Raises:
            RuntimeError: If the server is not initialized.
        """
        if not self.initialized:
            raise RuntimeError("Server not initialized")
        return await self.registry.dispatch(name, arguments or {})

    async def shutdown(self) -> None:
        """Close the HTTP client and mark the server stopped."""
        self._logger.info("server_shutting_down")
        await self.client.aclose()
        self.initialized = False


def to_call_tool_result(response: ApiResponse) -> types.CallToolResult:
    """Convert a registry response to the SDK's CallToolResult."""
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=item["text"])
            for item in response.get("content", [])
        ],
        structuredContent=response.get("structuredContent"),
        isError=bool(response.get("isError", False)),
    )


def build_sdk_server(server: MCPServer) -> Server:
    """Low-level SDK server whose handlers delegate to ``server``."""
    app: Server = Server(server.config.name, version=server.config.version)

    @app.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=tool["name"],
                description=tool["description"],
                inputSchema=tool["inputSchema"],
                outputSchema=tool["outputSchema"],
            )
            for tool in await server.list_tools()
        ]

    # Input validation happens in the registry so errors keep our response shape
    @app.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        return to_call_tool_result(await server.call_tool(name, arguments))

    return app


async def run_stdio(server: MCPServer) -> None:
    """Serve ``server`` over stdio until the client disconnects."""
    app = build_sdk_server(server)
    await server.initialize({"name": "stdio"})
    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        await server.shutdown()


__all__ = ["MCPServer", "build_sdk_server", "run_stdio", "to_call_tool_result"]
