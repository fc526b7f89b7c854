"""Composition root for Switchboard.

This module is the ONLY location that imports both core tool sets and
concrete adapter implementations. All wiring of dependencies happens
here, creating a clear entry point for the application.

Module Structure:
- Command-line parsing
- Configuration loading via config module
- Vendor adapter and tool set instantiation
- Entry point selection (stdio, gateway, one-shot CLI, consent flow)
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from switchboard import __version__
from switchboard.adapters.cli.commands import CLICommandHandler, run_command
from switchboard.adapters.gateway.http_server import GatewayHTTPServer
from switchboard.adapters.gateway.receiver import GatewayReceiver
from switchboard.adapters.mcp.stdio import serve_stdio
from switchboard.adapters.vendors.google_classroom import GoogleClassroomAdapter
from switchboard.adapters.vendors.google_cloud import GoogleCloudAdapter
from switchboard.adapters.vendors.google_credentials import (
    ServiceAccountCredentials,
    UserTokenCredentials,
    run_consent_flow,
)
from switchboard.adapters.vendors.sendgrid import SendGridAdapter
from switchboard.adapters.vendors.todoist import TodoistAdapter
from switchboard.adapters.vendors.woocommerce import WooCommerceAdapter
from switchboard.config import Settings, load_settings
from switchboard.core.classroom_tools import ClassroomToolSet
from switchboard.core.cloud_tools import GoogleCloudToolSet
from switchboard.core.dedup import RecentSubmissions
from switchboard.core.ports import ToolServerPort
from switchboard.core.sendgrid_tools import SendGridToolSet
from switchboard.core.todoist_tools import TodoistToolSet
from switchboard.core.woocommerce_tools import WooCommerceToolSet

SERVER_CHOICES = ("todoist", "woocommerce", "sendgrid", "classroom", "gcp")
RUN_MODE_COMMANDS = {"stdio": "serve", "gateway": "gateway", "cli": "shell"}


def _require(value: str, env_name: str) -> str:
    if not value:
        raise ValueError(f"{env_name} environment variable is required")
    return value


def build_toolset(settings: Settings) -> ToolServerPort:
    """Instantiate the vendor adapter and tool set named by ``settings.server``.

    Raises:
        ValueError: If a required credential is missing.
    """
    logger = logging.getLogger(__name__)
    timeout = settings.http_timeout_seconds

    if settings.server == "todoist":
        toolset: ToolServerPort = TodoistToolSet(
            TodoistAdapter(
                api_token=_require(settings.todoist_api_token, "TODOIST_API_TOKEN"),
                api_url=settings.todoist_api_url,
                timeout=timeout,
            ),
            RecentSubmissions(settings.dedup_window_seconds),
        )

    elif settings.server == "woocommerce":
        toolset = WooCommerceToolSet(
            WooCommerceAdapter(
                store_url=_require(settings.woocommerce_url, "WOOCOMMERCE_URL"),
                consumer_key=_require(
                    settings.woocommerce_consumer_key, "WOOCOMMERCE_CONSUMER_KEY"
                ),
                consumer_secret=_require(
                    settings.woocommerce_consumer_secret, "WOOCOMMERCE_CONSUMER_SECRET"
                ),
                query_string_auth=settings.woocommerce_query_string_auth,
                timeout=timeout,
            )
        )

    elif settings.server == "sendgrid":
        toolset = SendGridToolSet(
            SendGridAdapter(
                api_key=_require(settings.sendgrid_api_key, "SENDGRID_API_KEY"),
                api_url=settings.sendgrid_api_url,
                timeout=timeout,
            ),
            RecentSubmissions(settings.dedup_window_seconds),
        )

    elif settings.server == "classroom":
        # A missing token surfaces per call as "Not authenticated"
        credentials = UserTokenCredentials(
            token_path=settings.classroom_token_path,
            client_id=settings.google_client_id or None,
            client_secret=settings.google_client_secret or None,
        )
        toolset = ClassroomToolSet(GoogleClassroomAdapter(credentials, timeout=timeout))

    elif settings.server == "gcp":
        service_account = ServiceAccountCredentials(
            key_path=settings.gcp_service_account_path,
            project_id=settings.gcp_project_id or None,
        )
        toolset = GoogleCloudToolSet(
            GoogleCloudAdapter(
                service_account,
                timeout=timeout,
                command_timeout=settings.command_timeout_seconds,
            ),
            training_image=settings.gcp_training_image or None,
            region=settings.gcp_region,
        )

    else:
        raise ValueError(f"Unknown server: {settings.server}")

    logger.info(
        f"Tool server: {toolset.server_name} {toolset.version}",
        extra={"server": toolset.key, "tools": len(toolset.list_tools())},
    )
    return toolset


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Logs go to stderr; stdout carries the MCP stdio stream.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.INFO)

    if log_format == "json":
        format_str = (
            '{"time": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}'
        )
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="switchboard",
        description="MCP tool servers for Todoist, WooCommerce, SendGrid, "
        "Google Classroom and Google Cloud.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--server",
        choices=SERVER_CHOICES,
        help="Vendor tool server (default: SERVER setting)",
    )
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override LOG_LEVEL",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Serve MCP over stdio")

    gateway = subparsers.add_parser("gateway", help="Serve the HTTP gateway")
    gateway.add_argument("--host", help="Override GATEWAY_HOST")
    gateway.add_argument("--port", type=int, help="Override GATEWAY_PORT")

    tools = subparsers.add_parser("tools", help="List the tool catalogue")
    tools.add_argument("--format", choices=["text", "json"], default="text")

    call = subparsers.add_parser("call", help="Invoke one tool")
    call.add_argument("name", help="Tool name")
    call.add_argument(
        "arguments", nargs="?", default=None, help="Tool arguments as a JSON object"
    )
    call.add_argument("--verbose", action="store_true")

    subparsers.add_parser("shell", help="Interactive tool shell")
    subparsers.add_parser("classroom-auth", help="Authorize Google Classroom access")

    return parser


def _print_result(result: dict) -> None:
    data = result.get("data")
    if isinstance(data, str):
        print(data)
    elif "data" in result:
        print(json.dumps(data, indent=2, default=str))
    else:
        print(result.get("message", ""), file=sys.stderr)


async def _run_cli_interactive(cli_handler: CLICommandHandler) -> None:
    """Run interactive CLI loop.

    Each line is ``tools`` or ``<tool name> [<JSON arguments>]``.
    """
    logger = logging.getLogger(__name__)
    logger.info("Starting interactive CLI. Type 'tools' to list tools or 'exit' to quit.")

    loop = asyncio.get_running_loop()
    prompt = f"{cli_handler.toolset.key}> "

    while True:
        try:
            command_line = await loop.run_in_executor(None, input, prompt)
        except EOFError:
            logger.info("EOF received, exiting CLI")
            break

        command_line = command_line.strip()
        if not command_line:
            continue
        if command_line.lower() == "exit":
            logger.info("Exiting CLI")
            break
        if command_line.lower() == "tools":
            _print_result(cli_handler.list_tools())
            continue

        parts = command_line.split(maxsplit=1)
        arguments = parts[1] if len(parts) > 1 else None
        result = await cli_handler.call_tool(parts[0], arguments)
        _print_result(result)


async def bootstrap(argv: Sequence[str] | None = None) -> int:
    """Load configuration, wire adapters, and run the selected command.

    Steps:
    1. Parse arguments and load configuration
    2. Configure logging
    3. Instantiate the vendor adapter and tool set
    4. Run the selected command

    Returns:
        Process exit code.

    Raises:
        ValueError: On missing credentials or invalid configuration.
    """
    # Step 1: Parse arguments and load configuration
    args = build_parser().parse_args(argv)
    settings = load_settings(args.env_file)
    if args.server:
        settings.server = args.server

    # Step 2: Configure logging
    log_level = args.log_level or ("DEBUG" if settings.debug else settings.log_level)
    configure_logging(log_level, settings.log_format)
    logger = logging.getLogger(__name__)

    command = args.command or RUN_MODE_COMMANDS[settings.run_mode]

    if command == "classroom-auth":
        path = await asyncio.to_thread(
            run_consent_flow,
            _require(settings.google_client_id, "GOOGLE_CLIENT_ID"),
            _require(settings.google_client_secret, "GOOGLE_CLIENT_SECRET"),
            settings.classroom_token_path,
            settings.classroom_redirect_port,
        )
        print(f"Authenticated. Token saved to {path}")
        return 0

    # Step 3: Instantiate adapters
    toolset = build_toolset(settings)

    # Step 4: Run the selected command
    logger.info(f"Starting {command} for {toolset.server_name}")
    try:
        if command == "serve":
            await serve_stdio(toolset)

        elif command == "gateway":
            http_server = GatewayHTTPServer(
                GatewayReceiver(toolset),
                host=getattr(args, "host", None) or settings.gateway_host,
                port=getattr(args, "port", None) or settings.gateway_port,
                api_key=settings.gateway_api_key or None,
                require_auth=settings.gateway_require_auth,
            )
            await http_server.start()
            try:
                await http_server.wait()
            finally:
                await http_server.stop()

        elif command == "shell":
            await _run_cli_interactive(CLICommandHandler(toolset))

        else:
            result = await run_command(toolset, command, vars(args))
            _print_result(result)
            return 0 if result["status"] == "success" else 1

    finally:
        await toolset.close()

    return 0


def main() -> None:
    """Application entry point.

    Exit codes:
        0: Successful shutdown
        1: Fatal bootstrap or runtime error, or a failed one-shot tool call
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    logger = logging.getLogger(__name__)
    try:
        exit_code = asyncio.run(bootstrap())
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(130)
    except asyncio.CancelledError:
        logger.info("Graceful shutdown completed")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
