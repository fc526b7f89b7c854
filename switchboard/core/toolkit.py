"""Shared tool dispatch for every vendor tool set.

A ToolSet owns a catalogue of tools, each bound to an async handler. The
dispatcher validates the tool name, hands the handler a plain argument
dict and turns whatever happens into a ToolResult envelope, so transports
never see an exception from a tool call.
"""

import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import ArgumentError, VendorAPIError
from .models import ToolResult, ToolSpec
from .ports import ToolServerPort
from .validation import require_mapping

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[str | ToolResult]]


def tool_spec(
    name: str,
    description: str,
    properties: Mapping[str, Any] | None = None,
    required: Sequence[str] | None = None,
) -> ToolSpec:
    """Build a ToolSpec whose input schema is a JSON object schema."""
    schema: dict[str, Any] = {
        "type": "object",
        "properties": dict(properties or {}),
    }
    if required:
        schema["required"] = list(required)
    return ToolSpec(name=name, description=description, input_schema=schema)


def json_text(value: Any) -> str:
    """Render a reply payload as indented JSON text."""
    return json.dumps(value, indent=2, default=str)


@dataclass(frozen=True)
class _Registration:
    spec: ToolSpec
    handler: Handler
    failure: str
    invalid: str | None


class ToolSet(ToolServerPort):
    """Base class for vendor tool sets.

    Subclasses register their tools in ``__init__``:

        self.register(CREATE_TASK, self._create_task, failure="Error creating task")

    Failure handling:
    - ArgumentError: ``"<invalid>: <detail>"`` where ``invalid`` defaults to
      ``"Invalid arguments for <tool>"``; no vendor call has been made.
    - VendorAPIError: ``"<failure>: <message>"`` (see describe_failure).
    - Anything else: logged with traceback, reported like a vendor error.
    """

    def __init__(self) -> None:
        self._tools: dict[str, _Registration] = {}

    def register(
        self,
        spec: ToolSpec,
        handler: Handler,
        *,
        failure: str = "Error",
        invalid: str | None = None,
    ) -> None:
        """Bind a handler to a tool descriptor.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if spec.name in self._tools:
            raise ValueError(f"Tool {spec.name} is already registered")
        self._tools[spec.name] = _Registration(spec, handler, failure, invalid)

    def list_tools(self) -> list[ToolSpec]:
        return [registration.spec for registration in self._tools.values()]

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def describe_failure(self, prefix: str, error: VendorAPIError) -> str:
        """Render a vendor failure for the reply text.

        Vendors with their own error wording override this.
        """
        return f"{prefix}: {error.message}"

    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None
    ) -> ToolResult:
        registration = self._tools.get(name)
        if registration is None:
            logger.warning(
                f"Unknown tool requested: {name}",
                extra={"server": self.server_name, "tool": name},
            )
            return ToolResult.failure(f"Unknown tool: {name}")

        logger.debug(
            f"Calling tool {name}",
            extra={"server": self.server_name, "tool": name},
        )

        try:
            args = require_mapping(arguments)
            outcome = await registration.handler(args)
        except ArgumentError as e:
            invalid = registration.invalid or f"Invalid arguments for {name}"
            logger.info(
                f"Rejected call to {name}: {e}",
                extra={"server": self.server_name, "tool": name},
            )
            return ToolResult.failure(f"{invalid}: {e}")
        except VendorAPIError as e:
            logger.warning(
                f"Tool {name} failed: {e.message}",
                extra={
                    "server": self.server_name,
                    "tool": name,
                    "status_code": e.status_code,
                },
            )
            return ToolResult.failure(self.describe_failure(registration.failure, e))
        except Exception as e:
            logger.error(
                f"Unexpected error in tool {name}: {e}",
                exc_info=True,
                extra={"server": self.server_name, "tool": name},
            )
            return ToolResult.failure(f"{registration.failure}: {e}")

        if isinstance(outcome, ToolResult):
            return outcome
        return ToolResult.success(outcome)


__all__ = ["Handler", "ToolSet", "json_text", "tool_spec"]
