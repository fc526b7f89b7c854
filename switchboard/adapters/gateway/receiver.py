"""HTTP gateway receiver.

Turns decoded gateway requests into tool-set calls and returns plain dicts
for the HTTP layer to serialize. Request problems raise GatewayRequestError,
which the HTTP layer renders as ``{"error": ..., "isError": true}``.
"""

import json
import logging
from typing import Any

from switchboard.core.ports import ToolServerPort

logger = logging.getLogger(__name__)


class GatewayRequestError(ValueError):
    """A gateway request that cannot be served."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GatewayReceiver:
    """Forwards gateway requests to a single tool set."""

    def __init__(self, toolset: ToolServerPort):
        """Initialize the gateway receiver.

        Args:
            toolset: Tool set served by this gateway.
        """
        self.toolset = toolset

    def matches_server(self, selected: str) -> bool:
        """Return True if a selected-server name refers to this tool set."""
        wanted = selected.strip().lower()
        names = {self.toolset.key, self.toolset.server_name, *self.toolset.aliases}
        return wanted in {name.lower() for name in names}

    def handle_health(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "server": self.toolset.server_name,
            "version": self.toolset.version,
        }

    def handle_list_tools(self) -> dict[str, Any]:
        return {
            "server": self.toolset.server_name,
            "tools": [spec.to_dict() for spec in self.toolset.list_tools()],
        }

    async def handle_tool_call(self, data: dict[str, Any]) -> dict[str, Any]:
        """Handle ``{"name": ..., "arguments": {...}}``.

        Returns:
            The tool result envelope.

        Raises:
            GatewayRequestError: If the name is missing or unknown.
        """
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise GatewayRequestError("Missing tool name")
        if not any(spec.name == name for spec in self.toolset.list_tools()):
            raise GatewayRequestError(f"Unknown tool: {name}")

        result = await self.toolset.call_tool(name, data.get("arguments"))
        logger.info(
            f"Tool {name} called via gateway",
            extra={"server": self.toolset.server_name, "tool": name, "is_error": result.is_error},
        )
        return result.to_dict()

    async def handle_process_message(self, data: dict[str, Any]) -> dict[str, Any]:
        """Handle the legacy ``process_message`` payload.

        The payload names the selected servers and carries the tool call as
        a JSON string in ``client_details.input``.

        Raises:
            GatewayRequestError: If this server is not selected or the input
                is missing or malformed.
        """
        selected = data.get("selected_servers") or []
        if isinstance(selected, str):
            selected = [selected]
        if not any(isinstance(s, str) and self.matches_server(s) for s in selected):
            raise GatewayRequestError(f"{self.toolset.server_name} server not selected")

        client_details = data.get("client_details")
        raw_input = client_details.get("input") if isinstance(client_details, dict) else None
        if not raw_input:
            raise GatewayRequestError("Input is required in client_details")

        if isinstance(raw_input, dict):
            tool_call = raw_input
        else:
            try:
                tool_call = json.loads(raw_input)
            except (TypeError, ValueError) as e:
                raise GatewayRequestError("Invalid tool call format in input") from e
        if not isinstance(tool_call, dict):
            raise GatewayRequestError("Invalid tool call format in input")

        return await self.handle_tool_call(tool_call)
