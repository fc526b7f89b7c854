"""Exceptions shared by the core tool sets and the vendor adapters."""

from typing import Any


class ArgumentError(ValueError):
    """Tool arguments failed local validation.

    Raised before any vendor call is made.
    """


class VendorAPIError(Exception):
    """A vendor API call failed.

    Attributes:
        message: Human-readable message extracted from the vendor response.
        status_code: HTTP status, or None for transport failures.
        details: Parsed response body, when there was one.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        return self.message


class NotAuthenticatedError(VendorAPIError):
    """No usable credentials are available for the vendor."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, status_code=401)
