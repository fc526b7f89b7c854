"""HTTP server adapter for the tool gateway.

Provides a simple HTTP facade over a tool set using Python's built-in
http.server module, bridged to the asyncio loop that owns the vendor
clients.

Supports optional API key authentication via the Authorization header
(Bearer token) or X-API-Key. The health check is always public.
"""

import asyncio
import concurrent.futures
import hmac
import json
import logging
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Coroutine

from switchboard.adapters.gateway.receiver import GatewayReceiver, GatewayRequestError

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 1024 * 1024
REQUEST_TIMEOUT_SECONDS = 120


def make_gateway_handler(
    receiver: GatewayReceiver,
    event_loop: asyncio.AbstractEventLoop,
    api_key: str | None,
    require_auth: bool,
) -> type[BaseHTTPRequestHandler]:
    """Factory to create a GatewayHTTPHandler class bound to its dependencies.

    Args:
        receiver: Receiver that serves the requests
        event_loop: Event loop running the tool set
        api_key: Gateway API key, if one is configured
        require_auth: Whether requests other than /health need the key

    Returns:
        A GatewayHTTPHandler class configured with the provided dependencies
    """

    class GatewayHTTPHandler(BaseHTTPRequestHandler):
        """HTTP request handler for gateway endpoints."""

        def _check_auth(self) -> bool:
            """Return True if the request carries the gateway API key.

            The key is accepted as `Authorization: Bearer <key>` or as an
            `X-API-Key` header.
            """
            if not require_auth:
                return True

            # Nothing can authenticate without a configured key
            if not api_key:
                return False

            auth_header = self.headers.get("Authorization", "")
            if auth_header.startswith("Bearer "):
                return hmac.compare_digest(auth_header[7:], api_key)

            api_key_header = self.headers.get("X-API-Key", "")
            if api_key_header:
                return hmac.compare_digest(api_key_header, api_key)

            return False

        def do_GET(self) -> None:
            if self.path == "/health":
                self._send_json(200, receiver.handle_health())
                return

            if not self._check_auth():
                self._send_error_json(401, "Unauthorized: invalid or missing API key")
                return

            if self.path == "/tools":
                self._send_json(200, receiver.handle_list_tools())
            else:
                self._send_error_json(404, "Not found")

        def do_POST(self) -> None:
            if not self._check_auth():
                self._send_error_json(401, "Unauthorized: invalid or missing API key")
                return

            try:
                content_length = int(self.headers.get("Content-Length", 0))
            except ValueError:
                self._send_error_json(400, "Invalid Content-Length")
                return

            if content_length > MAX_BODY_SIZE:
                self._send_error_json(413, "Request body too large")
                return

            body = self.rfile.read(content_length) if content_length > 0 else b""

            try:
                data = json.loads(body) if body else {}
            except (json.JSONDecodeError, UnicodeDecodeError):
                self._send_error_json(400, "Invalid JSON body")
                return
            if not isinstance(data, dict):
                self._send_error_json(400, "JSON body must be an object")
                return

            if self.path == "/api/v1/tools/call":
                self._run_async(receiver.handle_tool_call(data))
            elif self.path == "/api/v1/mcp/process_message":
                self._run_async(receiver.handle_process_message(data))
            else:
                self._send_error_json(404, "Not found")

        def _run_async(self, coro: Coroutine[Any, Any, dict[str, Any]]) -> None:
            """Run a receiver coroutine on the event loop and send its result."""
            future = asyncio.run_coroutine_threadsafe(coro, event_loop)
            try:
                result = future.result(timeout=REQUEST_TIMEOUT_SECONDS)
            except concurrent.futures.TimeoutError:
                future.cancel()
                logger.warning(
                    f"Gateway request timed out after {REQUEST_TIMEOUT_SECONDS}s",
                    extra={"path": self.path},
                )
                self._send_error_json(504, "Tool call timed out")
                return
            except GatewayRequestError as e:
                self._send_error_json(e.status_code, e.message)
                return
            except Exception as e:
                # Log full exception server-side; return the message only
                logger.error(f"Error handling gateway request: {e}", exc_info=True)
                self._send_error_json(500, str(e) or "Internal server error")
                return
            self._send_json(200, result)

        def _send_json(self, status: int, data: dict[str, Any]) -> None:
            payload = json.dumps(data).encode()
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def _send_error_json(self, status: int, message: str) -> None:
            self._send_json(status, {"error": message, "isError": True})

        def log_message(self, format: str, *args: Any) -> None:
            logger.debug(f"HTTP {self.client_address[0]}: {format % args}")

    return GatewayHTTPHandler


class GatewayHTTPServer:
    """Gateway HTTP server adapter."""

    def __init__(
        self,
        receiver: GatewayReceiver,
        host: str = "127.0.0.1",
        port: int = 8080,
        api_key: str | None = None,
        require_auth: bool = False,
    ):
        """Configure the gateway server.

        Args:
            receiver: GatewayReceiver instance to handle requests.
            host: Host to listen on.
            port: Port to listen on (0 picks a free port).
            api_key: Key clients must present when auth is required.
            require_auth: Reject requests other than /health without the key.
        """
        self.receiver = receiver
        self.host = host
        self.port = port
        self.api_key = api_key
        self.require_auth = require_auth
        self.server: HTTPServer | None = None
        self._server_task: asyncio.Task[None] | None = None

        if require_auth and not api_key:
            logger.warning(
                "GATEWAY_REQUIRE_AUTH is set without GATEWAY_API_KEY; "
                "every endpoint except /health will answer 401."
            )

    async def start(self) -> None:
        """Bind the listening socket and serve in a worker thread."""
        handler_class = make_gateway_handler(
            receiver=self.receiver,
            event_loop=asyncio.get_running_loop(),
            api_key=self.api_key,
            require_auth=self.require_auth,
        )
        self.server = HTTPServer((self.host, self.port), handler_class)
        # Pick up the bound port when started on port 0
        self.port = self.server.server_address[1]

        self._server_task = asyncio.create_task(self._run_server())
        logger.info(
            f"Gateway HTTP server listening on {self.host}:{self.port}"
            + (" (with API key authentication)" if self.require_auth else "")
        )

    async def _run_server(self) -> None:
        """Run the HTTP server loop in a worker thread."""
        if not self.server:
            return

        try:
            await asyncio.to_thread(self.server.serve_forever)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Gateway HTTP server error: {e}", exc_info=True)

    async def wait(self) -> None:
        """Block until the server loop exits."""
        if self._server_task:
            await self._server_task

    async def stop(self) -> None:
        """Shut the server down and wait for its thread to exit."""
        if self.server:
            self.server.shutdown()
            self.server.server_close()
        if self._server_task:
            self._server_task.cancel()
            try:
                await self._server_task
            except asyncio.CancelledError:
                pass
        logger.info("Gateway HTTP server stopped")
