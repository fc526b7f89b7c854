"""External adapters for the Switchboard tool servers.

This package contains all external dependencies (httpx, google-auth, the
mcp SDK, HTTP servers) and provides implementations of the core port
interfaces.

Adapter Organization:

- vendors/: REST clients for Todoist, WooCommerce, SendGrid, Classroom and GCP
- mcp/: MCP stdio transport bound to a tool set
- gateway/: HTTP gateway exposing tool calls as JSON endpoints
- cli/: One-shot command-line tool listing and calls
"""
