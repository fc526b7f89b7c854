"""Shared httpx plumbing for the vendor adapters.

Every request goes through ``send``, which turns transport failures and
non-2xx responses into VendorAPIError with the most specific message the
vendor body offers. Identifiers interpolated into URL paths go through
``segment`` so they can never address a different resource.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from switchboard.core.errors import ArgumentError, VendorAPIError

logger = logging.getLogger(__name__)

_MAX_TEXT_MESSAGE = 500


def segment(value: Any) -> str:
    """Percent-encode one URL path segment.

    Slashes are escaped and the dot segments ``.`` and ``..`` are refused,
    so an identifier stays inside the path it is placed in.

    Raises:
        ArgumentError: If the value is empty or a dot segment.
    """
    text = str(value)
    if text.strip() in ("", ".", ".."):
        raise ArgumentError(f"Invalid identifier: {text!r}")
    return quote(text, safe="")


def error_message(response: httpx.Response) -> str:
    """Extract a human-readable message from an error response.

    Looks in order at ``errors[].message`` (joined with ", "), ``error``
    (string or Google's ``{"error": {"message": ...}}``), ``message``,
    then the raw body and finally the reason phrase.
    """
    body = json_body(response)
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list):
            messages = [
                str(e["message"]) for e in errors if isinstance(e, dict) and e.get("message")
            ]
            if messages:
                return ", ".join(messages)
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if body.get("message"):
            return str(body["message"])
    text = response.text.strip()
    if text:
        return text[:_MAX_TEXT_MESSAGE]
    return response.reason_phrase or f"HTTP {response.status_code}"


def json_body(response: httpx.Response) -> Any:
    """Return the decoded JSON body, or None for empty or non-JSON bodies."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    vendor: str,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request and raise VendorAPIError unless it succeeded.

    Args:
        client: Configured AsyncClient (base URL, auth, timeout).
        method: HTTP method.
        url: Path relative to the client's base URL, or an absolute URL.
        vendor: Vendor name used in log messages.
        **kwargs: Passed through to ``client.request`` (params, json, ...).

    Raises:
        VendorAPIError: On transport failure or a non-2xx status.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.RequestError as e:
        logger.error(
            f"{vendor} request failed: {method} {url}: {e}",
            exc_info=True,
            extra={"vendor": vendor, "method": method, "url": url},
        )
        raise VendorAPIError(str(e) or type(e).__name__) from e

    if response.is_error:
        message = error_message(response)
        logger.error(
            f"{vendor} API error {response.status_code}: {method} {url}: {message}",
            extra={
                "vendor": vendor,
                "method": method,
                "url": url,
                "status_code": response.status_code,
            },
        )
        raise VendorAPIError(
            message,
            status_code=response.status_code,
            details=json_body(response),
        )
    return response
