"""Unit tests for the one-shot CLI commands (tools and call).

Tests verify that the commands:
- Render the catalogue as text or JSON
- Parse JSON arguments and report malformed ones without calling a tool
- Map tool errors to an error status
"""

import json

import pytest

from switchboard.adapters.cli.commands import CLICommandHandler, run_command
from switchboard.core.todoist_tools import TodoistToolSet
from switchboard.tests.fakes import FakeTodoistPort


# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def client() -> FakeTodoistPort:
    """Create a fake Todoist account with one project and one task."""
    fake = FakeTodoistPort()
    fake.projects["p1"] = {"id": "p1", "name": "Inbox"}
    fake.tasks["t1"] = {"id": "t1", "content": "Buy milk", "project_id": "p1"}
    return fake


@pytest.fixture
def toolset(client: FakeTodoistPort) -> TodoistToolSet:
    return TodoistToolSet(client)


@pytest.fixture
def handler(toolset: TodoistToolSet) -> CLICommandHandler:
    return CLICommandHandler(toolset)


# ============================================================================
# tools
# ============================================================================


class TestListTools:
    """Tests for the catalogue command."""

    def test_text_format(self, handler: CLICommandHandler, toolset: TodoistToolSet) -> None:
        result = handler.list_tools()

        assert result["status"] == "success"
        lines = result["data"].splitlines()
        assert lines[0] == f"todoist-mcp-server-enhanced 0.2.0 ({len(toolset.list_tools())} tools)"
        assert lines[1].startswith("  todoist_create_task: ")

    def test_json_format(self, handler: CLICommandHandler) -> None:
        result = handler.list_tools("json")

        assert result["status"] == "success"
        assert result["data"][0]["name"] == "todoist_create_task"
        assert result["data"][0]["inputSchema"]["type"] == "object"
        json.dumps(result["data"])

    def test_unsupported_format(self, handler: CLICommandHandler) -> None:
        result = handler.list_tools("yaml")

        assert result["status"] == "error"
        assert result["message"] == "Unsupported format: yaml"


# ============================================================================
# call
# ============================================================================


@pytest.mark.asyncio
class TestCallTool:
    """Tests for the one-shot call command."""

    async def test_successful_call(self, handler: CLICommandHandler) -> None:
        result = await handler.call_tool("todoist_get_projects")

        assert result == {
            "status": "success",
            "operation": "call",
            "tool": "todoist_get_projects",
            "data": "Projects:\n- Inbox (ID: p1)",
        }

    async def test_call_with_arguments(self, handler: CLICommandHandler) -> None:
        result = await handler.call_tool("todoist_get_task", '{"taskId": "t1"}', verbose=True)

        assert result["status"] == "success"
        assert result["data"].startswith("Task details:\nID: t1")

    async def test_invalid_json_arguments(
        self, handler: CLICommandHandler, client: FakeTodoistPort
    ) -> None:
        result = await handler.call_tool("todoist_get_task", "{taskId: t1}")

        assert result["status"] == "error"
        assert result["message"].startswith("Invalid JSON arguments:")
        assert client.network_calls == 0

    async def test_tool_error_is_error_status(self, handler: CLICommandHandler) -> None:
        result = await handler.call_tool("todoist_get_task", "{}")

        assert result["status"] == "error"
        assert "'taskId' is required" in result["data"]

    async def test_unknown_tool(self, handler: CLICommandHandler) -> None:
        result = await handler.call_tool("todoist_fly")

        assert result["status"] == "error"
        assert result["data"] == "Unknown tool: todoist_fly"


@pytest.mark.asyncio
class TestRunCommand:
    """Tests for command dispatch."""

    async def test_tools_command(self, toolset: TodoistToolSet) -> None:
        result = await run_command(toolset, "tools", {"format": "json"})
        assert result["operation"] == "tools"

    async def test_call_command(self, toolset: TodoistToolSet) -> None:
        result = await run_command(
            toolset, "call", {"name": "todoist_get_projects", "arguments": None}
        )
        assert result["status"] == "success"

    async def test_unknown_command(self, toolset: TodoistToolSet) -> None:
        with pytest.raises(ValueError, match="Unknown command: scan"):
            await run_command(toolset, "scan", {})
