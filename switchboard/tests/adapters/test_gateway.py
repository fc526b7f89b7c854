"""Tests for the HTTP gateway receiver and server."""

import asyncio
import http.client
import json
import urllib.error
import urllib.request

import pytest

from switchboard.adapters.gateway import http_server
from switchboard.adapters.gateway.http_server import MAX_BODY_SIZE, GatewayHTTPServer
from switchboard.adapters.gateway.receiver import GatewayReceiver, GatewayRequestError
from switchboard.core.todoist_tools import TodoistToolSet
from switchboard.core.models import Page
from switchboard.tests.fakes import FakeTodoistPort


@pytest.fixture
def client() -> FakeTodoistPort:
    """Create a fake Todoist account with one project."""
    fake = FakeTodoistPort()
    fake.projects["p1"] = {"id": "p1", "name": "Inbox"}
    return fake


@pytest.fixture
def receiver(client: FakeTodoistPort) -> GatewayReceiver:
    return GatewayReceiver(TodoistToolSet(client))


# ============================================================================
# Receiver
# ============================================================================


class TestGatewayReceiver:
    """Tests for request routing in the receiver."""

    def test_health(self, receiver: GatewayReceiver) -> None:
        assert receiver.handle_health() == {
            "status": "ok",
            "server": "todoist-mcp-server-enhanced",
            "version": "0.2.0",
        }

    def test_list_tools(self, receiver: GatewayReceiver) -> None:
        listing = receiver.handle_list_tools()

        names = [tool["name"] for tool in listing["tools"]]
        assert names[0] == "todoist_create_task"
        assert "inputSchema" in listing["tools"][0]

    @pytest.mark.parametrize("selected", ["todoist", "TODOIST", "todoist-mcp-server-enhanced"])
    def test_matches_server(self, receiver: GatewayReceiver, selected: str) -> None:
        assert receiver.matches_server(selected)

    def test_does_not_match_other_server(self, receiver: GatewayReceiver) -> None:
        assert not receiver.matches_server("sendgrid")

    @pytest.mark.asyncio
    async def test_tool_call(self, receiver: GatewayReceiver) -> None:
        result = await receiver.handle_tool_call({"name": "todoist_get_projects", "arguments": {}})

        assert result == {
            "content": [{"type": "text", "text": "Projects:\n- Inbox (ID: p1)"}],
            "isError": False,
        }

    @pytest.mark.asyncio
    async def test_tool_call_requires_name(self, receiver: GatewayReceiver) -> None:
        with pytest.raises(GatewayRequestError, match="Missing tool name"):
            await receiver.handle_tool_call({"arguments": {}})

    @pytest.mark.asyncio
    async def test_unknown_tool(self, receiver: GatewayReceiver) -> None:
        with pytest.raises(GatewayRequestError, match="Unknown tool: nope"):
            await receiver.handle_tool_call({"name": "nope"})

    @pytest.mark.asyncio
    async def test_process_message_with_json_input(self, receiver: GatewayReceiver) -> None:
        result = await receiver.handle_process_message(
            {
                "selected_servers": ["TODOIST"],
                "client_details": {
                    "input": json.dumps({"name": "todoist_get_projects", "arguments": {}})
                },
            }
        )

        assert result["isError"] is False
        assert "Inbox" in result["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_process_message_server_not_selected(self, receiver: GatewayReceiver) -> None:
        with pytest.raises(GatewayRequestError, match="server not selected"):
            await receiver.handle_process_message(
                {"selected_servers": ["SENDGRID"], "client_details": {"input": "{}"}}
            )

    @pytest.mark.asyncio
    async def test_process_message_requires_input(self, receiver: GatewayReceiver) -> None:
        with pytest.raises(GatewayRequestError, match="Input is required"):
            await receiver.handle_process_message({"selected_servers": "todoist"})

    @pytest.mark.asyncio
    async def test_process_message_malformed_input(self, receiver: GatewayReceiver) -> None:
        with pytest.raises(GatewayRequestError, match="Invalid tool call format"):
            await receiver.handle_process_message(
                {"selected_servers": ["todoist"], "client_details": {"input": "{not json"}}
            )

    @pytest.mark.asyncio
    async def test_tool_errors_are_results(
        self, receiver: GatewayReceiver, client: FakeTodoistPort
    ) -> None:
        client.should_fail = True

        result = await receiver.handle_tool_call({"name": "todoist_get_projects"})

        assert result["isError"] is True


# ============================================================================
# HTTP server
# ============================================================================


def _request(method: str, url: str, body: dict | None = None, headers: dict | None = None):
    """Blocking HTTP request returning (status, decoded JSON)."""
    data = json.dumps(body).encode() if body is not None else None
    request = urllib.request.Request(url, data=data, method=method, headers=headers or {})
    if data is not None:
        request.add_header("Content-Type", "application/json")
    try:
        with urllib.request.urlopen(request, timeout=10) as response:
            return response.status, json.loads(response.read())
    except urllib.error.HTTPError as e:
        return e.code, json.loads(e.read())


def _post_raw(port: int, body: bytes, content_length: str | None = None):
    """POST raw bytes to the tool call endpoint with an optional forged Content-Length."""
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=10)
    try:
        conn.putrequest("POST", "/api/v1/tools/call")
        conn.putheader("Content-Type", "application/json")
        conn.putheader("Content-Length", content_length or str(len(body)))
        conn.endheaders(body or None)
        response = conn.getresponse()
        return response.status, json.loads(response.read())
    finally:
        conn.close()


class SlowTodoistPort(FakeTodoistPort):
    """Fake account whose project listing never answers in time."""

    def __init__(self) -> None:
        super().__init__()
        self.cancelled = False

    async def get_projects(self, *, cursor: str | None = None, limit: int | None = None) -> Page:
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return await super().get_projects(cursor=cursor, limit=limit)


@pytest.mark.asyncio
class TestGatewayHTTPServer:
    """End-to-end tests against a server bound to a free port."""

    async def _start(self, receiver: GatewayReceiver, **kwargs) -> GatewayHTTPServer:
        server = GatewayHTTPServer(receiver, host="127.0.0.1", port=0, **kwargs)
        await server.start()
        return server

    async def test_health_and_tool_call(self, receiver: GatewayReceiver) -> None:
        server = await self._start(receiver)
        base = f"http://127.0.0.1:{server.port}"
        try:
            status, health = await asyncio.to_thread(_request, "GET", f"{base}/health")
            assert status == 200
            assert health["status"] == "ok"

            status, result = await asyncio.to_thread(
                _request,
                "POST",
                f"{base}/api/v1/tools/call",
                {"name": "todoist_get_projects", "arguments": {}},
            )
            assert status == 200
            assert result["content"][0]["text"] == "Projects:\n- Inbox (ID: p1)"
        finally:
            await server.stop()

    async def test_unknown_tool_is_json_error(self, receiver: GatewayReceiver) -> None:
        server = await self._start(receiver)
        try:
            status, body = await asyncio.to_thread(
                _request, "POST", f"http://127.0.0.1:{server.port}/api/v1/tools/call", {"name": "x"}
            )
        finally:
            await server.stop()

        assert status == 400
        assert body == {"error": "Unknown tool: x", "isError": True}

    async def test_unknown_path(self, receiver: GatewayReceiver) -> None:
        server = await self._start(receiver)
        try:
            status, body = await asyncio.to_thread(
                _request, "GET", f"http://127.0.0.1:{server.port}/nowhere"
            )
        finally:
            await server.stop()

        assert status == 404
        assert body["isError"] is True

    async def test_oversized_body_rejected(self, receiver: GatewayReceiver) -> None:
        server = await self._start(receiver)
        try:
            status, body = await asyncio.to_thread(
                _post_raw, server.port, b"", str(MAX_BODY_SIZE + 1)
            )
        finally:
            await server.stop()

        assert status == 413
        assert body == {"error": "Request body too large", "isError": True}

    @pytest.mark.parametrize("payload", [b"{not json", b"\x80\x81"])
    async def test_invalid_json_body(self, receiver: GatewayReceiver, payload: bytes) -> None:
        server = await self._start(receiver)
        try:
            status, body = await asyncio.to_thread(_post_raw, server.port, payload)
        finally:
            await server.stop()

        assert status == 400
        assert body == {"error": "Invalid JSON body", "isError": True}

    async def test_non_object_body(self, receiver: GatewayReceiver) -> None:
        server = await self._start(receiver)
        try:
            status, body = await asyncio.to_thread(_post_raw, server.port, b"[1, 2]")
        finally:
            await server.stop()

        assert status == 400
        assert body == {"error": "JSON body must be an object", "isError": True}

    async def test_invalid_content_length(self, receiver: GatewayReceiver) -> None:
        server = await self._start(receiver)
        try:
            status, body = await asyncio.to_thread(_post_raw, server.port, b"", "abc")
        finally:
            await server.stop()

        assert status == 400
        assert body == {"error": "Invalid Content-Length", "isError": True}

    async def test_slow_tool_call_times_out(self, monkeypatch) -> None:
        monkeypatch.setattr(http_server, "REQUEST_TIMEOUT_SECONDS", 0.2)
        client = SlowTodoistPort()
        server = await self._start(GatewayReceiver(TodoistToolSet(client)))
        try:
            status, body = await asyncio.to_thread(
                _request,
                "POST",
                f"http://127.0.0.1:{server.port}/api/v1/tools/call",
                {"name": "todoist_get_projects", "arguments": {}},
            )
            await asyncio.sleep(0.05)
        finally:
            await server.stop()

        assert status == 504
        assert body == {"error": "Tool call timed out", "isError": True}
        assert client.cancelled

    async def test_auth_required(self, receiver: GatewayReceiver) -> None:
        server = await self._start(receiver, api_key="secret", require_auth=True)
        base = f"http://127.0.0.1:{server.port}"
        try:
            denied, _ = await asyncio.to_thread(_request, "GET", f"{base}/tools")
            bearer, listing = await asyncio.to_thread(
                _request, "GET", f"{base}/tools", None, {"Authorization": "Bearer secret"}
            )
            header, _ = await asyncio.to_thread(
                _request, "GET", f"{base}/tools", None, {"X-API-Key": "secret"}
            )
            health, _ = await asyncio.to_thread(_request, "GET", f"{base}/health")
        finally:
            await server.stop()

        assert denied == 401
        assert bearer == 200
        assert listing["server"] == "todoist-mcp-server-enhanced"
        assert header == 200
        assert health == 200


def test_require_auth_without_key_is_allowed(receiver: GatewayReceiver) -> None:
    server = GatewayHTTPServer(receiver, require_auth=True)

    assert server.require_auth is True
    assert server.api_key is None
