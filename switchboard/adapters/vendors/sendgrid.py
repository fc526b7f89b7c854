"""SendGrid adapter.

Implements SendGridPort against the SendGrid v3 API with a bearer API key.
Error responses carry ``{"errors": [{"message": ...}, ...]}``; their
messages are joined into the VendorAPIError message.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from switchboard.core.ports import SendGridPort

from .http import json_body, segment, send

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.sendgrid.com"


class SendGridAdapter(SendGridPort):
    """SendGrid v3 API client."""

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.aclose()

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await send(self.client, method, path, vendor="SendGrid", **kwargs)
        return json_body(response)

    # Mail

    async def send_mail(self, payload: dict[str, Any]) -> None:
        await self._request("POST", "/v3/mail/send", json=payload)

    # Contacts

    async def search_contacts(self, query: str) -> list[dict[str, Any]]:
        body = await self._request("POST", "/v3/marketing/contacts/search", json={"query": query})
        return (body or {}).get("result") or []

    async def delete_contacts(self, contact_ids: Sequence[str]) -> None:
        await self._request(
            "DELETE", "/v3/marketing/contacts", params={"ids": ",".join(contact_ids)}
        )

    async def upsert_contacts(
        self,
        contacts: Sequence[dict[str, Any]],
        list_ids: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"contacts": list(contacts)}
        if list_ids:
            payload["list_ids"] = list(list_ids)
        return await self._request("PUT", "/v3/marketing/contacts", json=payload) or {}

    # Lists

    async def list_lists(self) -> list[dict[str, Any]]:
        body = await self._request("GET", "/v3/marketing/lists")
        return (body or {}).get("result") or []

    async def create_list(self, name: str) -> dict[str, Any]:
        return await self._request("POST", "/v3/marketing/lists", json={"name": name})

    async def delete_list(self, list_id: str) -> None:
        await self._request("DELETE", f"/v3/marketing/lists/{segment(list_id)}")

    async def remove_contacts_from_list(
        self, list_id: str, contact_ids: Sequence[str]
    ) -> None:
        await self._request(
            "DELETE",
            f"/v3/marketing/lists/{segment(list_id)}/contacts",
            params={"contact_ids": ",".join(contact_ids)},
        )

    # Templates

    async def create_template(self, name: str, generation: str = "dynamic") -> dict[str, Any]:
        return await self._request(
            "POST", "/v3/templates", json={"name": name, "generation": generation}
        )

    async def create_template_version(
        self, template_id: str, version: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"/v3/templates/{segment(template_id)}/versions", json=version
        )

    async def list_templates(self) -> list[dict[str, Any]]:
        body = await self._request("GET", "/v3/templates", params={"generations": "dynamic"})
        return (body or {}).get("templates") or []

    async def get_template(self, template_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/v3/templates/{segment(template_id)}")

    async def delete_template(self, template_id: str) -> None:
        await self._request("DELETE", f"/v3/templates/{segment(template_id)}")

    # Validation and statistics

    async def validate_email(self, email: str) -> dict[str, Any]:
        return await self._request("POST", "/v3/validations/email", json={"email": email})

    async def get_stats(self, params: dict[str, Any]) -> Any:
        return await self._request("GET", "/v3/stats", params=params)

    # Single Sends

    async def create_single_send(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/v3/marketing/singlesends", json=payload)

    async def schedule_single_send(self, single_send_id: str, send_at: str) -> dict[str, Any]:
        return await self._request(
            "PUT",
            f"/v3/marketing/singlesends/{segment(single_send_id)}/schedule",
            json={"send_at": send_at},
        )

    async def get_single_send(self, single_send_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/v3/marketing/singlesends/{segment(single_send_id)}")

    async def list_single_sends(self) -> list[dict[str, Any]]:
        body = await self._request("GET", "/v3/marketing/singlesends")
        return (body or {}).get("result") or []

    # Account

    async def get_suppression_groups(self) -> Any:
        return await self._request("GET", "/v3/asm/groups")

    async def get_verified_senders(self) -> Any:
        return await self._request("GET", "/v3/verified_senders")
