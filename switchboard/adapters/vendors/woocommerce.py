"""WooCommerce adapter.

Implements WooCommercePort against the WooCommerce REST API (wc/v3).

Authentication follows WooCommerce's rules: HTTP Basic with the consumer
key and secret over HTTPS; over plain HTTP (or when forced) the
credentials travel as ``consumer_key``/``consumer_secret`` query parameters.
"""

import logging
from typing import Any

import httpx

from switchboard.core.models import Page
from switchboard.core.ports import WooCommercePort

from .http import json_body, segment, send

logger = logging.getLogger(__name__)

API_PATH = "/wp-json/wc/v3"


class WooCommerceAdapter(WooCommercePort):
    """WooCommerce REST API client."""

    def __init__(
        self,
        store_url: str,
        consumer_key: str,
        consumer_secret: str,
        query_string_auth: bool = False,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize WooCommerce adapter.

        Args:
            store_url: Store root URL, e.g. https://shop.example.com
            consumer_key: REST API consumer key (ck_...).
            consumer_secret: REST API consumer secret (cs_...).
            query_string_auth: Send credentials as query parameters even over HTTPS.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.store_url = store_url.rstrip("/")
        self.query_string_auth = query_string_auth or not self.store_url.startswith("https://")

        auth: httpx.BasicAuth | None = None
        params: dict[str, str] = {}
        if self.query_string_auth:
            params = {"consumer_key": consumer_key, "consumer_secret": consumer_secret}
        else:
            auth = httpx.BasicAuth(consumer_key, consumer_secret)

        self.client = httpx.AsyncClient(
            base_url=f"{self.store_url}{API_PATH}",
            auth=auth,
            params=params,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.aclose()

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return await send(self.client, method, path, vendor="WooCommerce", **kwargs)

    async def _list(self, path: str, page: int, params: dict[str, Any]) -> Page:
        response = await self._request("GET", path, params=params)
        body = json_body(response) or []
        next_cursor = None
        total_pages = response.headers.get("X-WP-TotalPages")
        if total_pages and total_pages.isdigit() and page < int(total_pages):
            next_cursor = str(page + 1)
        return Page(results=tuple(body), next_cursor=next_cursor)

    # Products

    async def list_products(
        self,
        *,
        page: int = 1,
        per_page: int = 10,
        search: str | None = None,
        status: str | None = None,
    ) -> Page:
        params: dict[str, Any] = {"page": page, "per_page": per_page}
        if search:
            params["search"] = search
        if status:
            params["status"] = status
        return await self._list("/products", page, params)

    async def get_product(self, product_id: int) -> dict[str, Any]:
        return json_body(await self._request("GET", f"/products/{segment(product_id)}"))

    async def create_product(self, data: dict[str, Any]) -> dict[str, Any]:
        return json_body(await self._request("POST", "/products", json=data))

    async def update_product(self, product_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return json_body(await self._request("PUT", f"/products/{segment(product_id)}", json=data))

    async def delete_product(self, product_id: int, force: bool = True) -> dict[str, Any]:
        response = await self._request(
            "DELETE",
            f"/products/{segment(product_id)}",
            params={"force": "true" if force else "false"},
        )
        return json_body(response) or {}

    # Orders

    async def list_orders(
        self,
        *,
        page: int = 1,
        per_page: int = 10,
        status: str | None = None,
        customer: int | None = None,
    ) -> Page:
        params: dict[str, Any] = {"page": page, "per_page": per_page}
        if status:
            params["status"] = status
        if customer is not None:
            params["customer"] = customer
        return await self._list("/orders", page, params)

    async def get_order(self, order_id: int) -> dict[str, Any]:
        return json_body(await self._request("GET", f"/orders/{segment(order_id)}"))

    async def update_order(self, order_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return json_body(await self._request("PUT", f"/orders/{segment(order_id)}", json=data))
