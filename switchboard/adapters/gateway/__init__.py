"""HTTP gateway adapters.

Provides HTTP endpoints for clients that do not speak MCP:
- List the tool catalogue
- Call a tool with JSON arguments
- Accept the legacy process_message payload
"""
