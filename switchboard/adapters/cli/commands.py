"""CLI command implementations for one-shot tool use.

Lets an operator inspect a server's catalogue and invoke a single tool
from the command line without an MCP client.
"""

import json
import logging
from typing import Any

from switchboard.core.ports import ToolServerPort

logger = logging.getLogger(__name__)


class CLICommandHandler:
    """Handles CLI commands by delegating to a tool set."""

    def __init__(self, toolset: ToolServerPort):
        """Initialize the CLI command handler.

        Args:
            toolset: Tool set to execute commands against.
        """
        self.toolset = toolset

    def list_tools(self, format: str = "text") -> dict[str, Any]:
        """List the tool catalogue.

        Args:
            format: Output format ('json', 'text'). Default 'text'.

        Returns:
            Dictionary with status and the catalogue.
        """
        specs = self.toolset.list_tools()

        if format == "json":
            return {
                "status": "success",
                "operation": "tools",
                "data": [spec.to_dict() for spec in specs],
            }

        elif format == "text":
            lines = [f"{self.toolset.server_name} {self.toolset.version} ({len(specs)} tools)"]
            for spec in specs:
                lines.append(f"  {spec.name}: {spec.description}")
            return {
                "status": "success",
                "operation": "tools",
                "data": "\n".join(lines),
            }

        else:
            return {
                "status": "error",
                "operation": "tools",
                "message": f"Unsupported format: {format}",
            }

    async def call_tool(
        self, name: str, arguments: str | None = None, verbose: bool = False
    ) -> dict[str, Any]:
        """Invoke one tool.

        Args:
            name: Tool name.
            arguments: Tool arguments as a JSON object string.
            verbose: If True, log the call.

        Returns:
            Dictionary with status and the tool's reply text.
        """
        try:
            parsed = json.loads(arguments) if arguments else {}
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON arguments for {name}: {e}")
            return {
                "status": "error",
                "operation": "call",
                "tool": name,
                "message": f"Invalid JSON arguments: {e}",
            }

        result = await self.toolset.call_tool(name, parsed)

        if verbose:
            logger.info(
                f"Called tool {name}",
                extra={"tool": name, "is_error": result.is_error, "verbose": True},
            )

        return {
            "status": "error" if result.is_error else "success",
            "operation": "call",
            "tool": name,
            "data": result.text,
        }


async def run_command(
    toolset: ToolServerPort,
    command: str,
    args: dict[str, Any],
) -> dict[str, Any]:
    """Run a CLI command.

    Args:
        toolset: Tool set to run against.
        command: Command name ('tools', 'call').
        args: Dictionary of command arguments.

    Returns:
        Dictionary with command result.

    Raises:
        ValueError: If command is not recognized.
    """
    handler = CLICommandHandler(toolset)

    if command == "tools":
        return handler.list_tools(args.get("format", "text"))

    elif command == "call":
        return await handler.call_tool(
            args["name"],
            args.get("arguments"),
            args.get("verbose", False),
        )

    else:
        raise ValueError(f"Unknown command: {command}")
