"""MCP stdio transport.

Wraps a ToolServerPort in the MCP SDK's low-level Server and serves it over
stdin/stdout. Tool results keep their ``isError`` flag, so a failed call is
reported to the client as a tool error rather than a protocol error.
"""

import logging
from typing import Any

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from switchboard.core.models import ToolResult, ToolSpec
from switchboard.core.ports import ToolServerPort

logger = logging.getLogger(__name__)


def to_mcp_tool(spec: ToolSpec) -> types.Tool:
    """Convert a tool descriptor into the SDK's Tool type."""
    descriptor = spec.to_dict()
    return types.Tool(
        name=descriptor["name"],
        description=descriptor["description"],
        inputSchema=descriptor["inputSchema"],
    )


def to_call_result(result: ToolResult) -> types.CallToolResult:
    """Convert a tool result into the SDK's CallToolResult type."""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text) for text in result.texts],
        isError=result.is_error,
    )


def build_server(toolset: ToolServerPort) -> Server:
    """Create an MCP server exposing the tool set's catalogue."""
    server: Server = Server(toolset.server_name, version=toolset.version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [to_mcp_tool(spec) for spec in toolset.list_tools()]

    # Arguments are validated by the tool set itself, with vendor wording.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        result = await toolset.call_tool(name, arguments)
        return to_call_result(result)

    return server


async def serve_stdio(toolset: ToolServerPort) -> None:
    """Serve the tool set over stdio until the client disconnects."""
    server = build_server(toolset)
    logger.info(
        f"Serving {toolset.server_name} {toolset.version} over stdio",
        extra={"server": toolset.server_name, "tools": len(toolset.list_tools())},
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
