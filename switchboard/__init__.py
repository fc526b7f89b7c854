"""Switchboard: MCP tool servers for Todoist, WooCommerce, SendGrid,
Google Classroom and Google Cloud.

Each vendor is exposed as a catalogue of tools that can be served over
MCP stdio, an HTTP gateway or the command line.
"""

__version__ = "0.2.0"
