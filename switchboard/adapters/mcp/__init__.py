"""MCP transport adapters.

Binds a tool set to the low-level server of the mcp SDK over stdio.
"""
