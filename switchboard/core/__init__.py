"""Core domain logic for the Switchboard tool servers.

This package contains zero external dependencies: tool catalogues,
argument validation, reply formatting and the de-duplication cache.
Vendor APIs and transports are handled by the adapters package.
"""

from .errors import ArgumentError, NotAuthenticatedError, VendorAPIError
from .models import CommandResult, MoveTally, Page, ToolResult, ToolSpec

__all__ = [
    "ArgumentError",
    "CommandResult",
    "MoveTally",
    "NotAuthenticatedError",
    "Page",
    "ToolResult",
    "ToolSpec",
    "VendorAPIError",
]
