"""WooCommerce tool set: products and orders of one store."""

import logging
from collections.abc import Mapping
from typing import Any

from .errors import ArgumentError
from .models import Page, ToolResult
from .ports import WooCommercePort
from .toolkit import ToolSet, tool_spec
from .validation import (
    optional_bool,
    optional_choice,
    optional_int,
    optional_str,
    optional_str_list,
    require_str,
)

logger = logging.getLogger(__name__)

PRODUCT_TYPES = ("simple", "grouped", "external", "variable")
PRODUCT_STATUSES = ("draft", "pending", "private", "publish")
ORDER_STATUSES = (
    "pending",
    "processing",
    "on-hold",
    "completed",
    "cancelled",
    "refunded",
    "failed",
)
MAX_PER_PAGE = 100

_PAGING = {
    "page": {"type": "number", "description": "Page number (default: 1)", "default": 1},
    "per_page": {
        "type": "number",
        "description": "Items per page (default: 10, max: 100)",
        "default": 10,
    },
}

_PRODUCT_FIELDS = {
    "type": {"type": "string", "enum": list(PRODUCT_TYPES), "description": "Product type"},
    "regular_price": {"type": "string", "description": "Regular price, e.g. '19.99'"},
    "sale_price": {"type": "string", "description": "Sale price (optional)"},
    "description": {"type": "string", "description": "Full description (HTML allowed)"},
    "short_description": {"type": "string", "description": "Short description"},
    "sku": {"type": "string", "description": "Stock keeping unit"},
    "status": {"type": "string", "enum": list(PRODUCT_STATUSES), "description": "Publication status"},
    "stock_quantity": {"type": "number", "description": "Stock quantity"},
    "manage_stock": {"type": "boolean", "description": "Whether stock is managed"},
    "categories": {
        "type": "array",
        "items": {"type": "number"},
        "description": "Category IDs",
    },
    "images": {
        "type": "array",
        "items": {"type": "string"},
        "description": "Image URLs",
    },
}

_PRODUCT_ID = {"productId": {"type": "number", "description": "The ID of the product"}}
_ORDER_ID = {"orderId": {"type": "number", "description": "The ID of the order"}}


# ============================================================================
# CATALOGUE
# ============================================================================

LIST_PRODUCTS = tool_spec(
    "woocommerce_list_products",
    "List products in the WooCommerce store with pagination",
    {
        **_PAGING,
        "search": {"type": "string", "description": "Search term (optional)"},
        "status": {
            "type": "string",
            "enum": list(PRODUCT_STATUSES),
            "description": "Filter by status (optional)",
        },
    },
)

GET_PRODUCT = tool_spec(
    "woocommerce_get_product",
    "Get a single product by its ID",
    _PRODUCT_ID,
    required=["productId"],
)

CREATE_PRODUCT = tool_spec(
    "woocommerce_create_product",
    "Create a new product",
    {"name": {"type": "string", "description": "Product name"}, **_PRODUCT_FIELDS},
    required=["name"],
)

UPDATE_PRODUCT = tool_spec(
    "woocommerce_update_product",
    "Update an existing product",
    {
        **_PRODUCT_ID,
        "name": {"type": "string", "description": "New product name (optional)"},
        **_PRODUCT_FIELDS,
    },
    required=["productId"],
)

DELETE_PRODUCT = tool_spec(
    "woocommerce_delete_product",
    "Permanently delete a product (bypasses the trash)",
    _PRODUCT_ID,
    required=["productId"],
)

LIST_ORDERS = tool_spec(
    "woocommerce_list_orders",
    "List orders with pagination",
    {
        **_PAGING,
        "status": {
            "type": "string",
            "enum": list(ORDER_STATUSES),
            "description": "Filter by order status (optional)",
        },
        "customer": {"type": "number", "description": "Filter by customer ID (optional)"},
    },
)

GET_ORDER = tool_spec(
    "woocommerce_get_order",
    "Get a single order by its ID",
    _ORDER_ID,
    required=["orderId"],
)

UPDATE_ORDER_STATUS = tool_spec(
    "woocommerce_update_order_status",
    "Change the status of an order",
    {
        **_ORDER_ID,
        "status": {
            "type": "string",
            "enum": list(ORDER_STATUSES),
            "description": "New order status",
        },
    },
    required=["orderId", "status"],
)


# ============================================================================
# FORMATTING
# ============================================================================


def parse_id(value: Any) -> int | None:
    """Return a positive integer id, accepting numeric strings; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer() and value > 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None


def format_product(product: Mapping[str, Any]) -> str:
    lines = [f"- {product.get('name')} (ID: {product.get('id')})"]
    if product.get("price"):
        lines.append(f"  Price: {product['price']}")
    if product.get("sale_price"):
        lines.append(f"  Sale Price: {product['sale_price']}")
    if product.get("status"):
        lines.append(f"  Status: {product['status']}")
    if product.get("sku"):
        lines.append(f"  SKU: {product['sku']}")
    if product.get("manage_stock"):
        lines.append(f"  Stock: {product.get('stock_quantity')}")
    elif product.get("stock_status"):
        lines.append(f"  Stock: {product['stock_status']}")
    if product.get("permalink"):
        lines.append(f"  URL: {product['permalink']}")
    return "\n".join(lines)


def format_order(order: Mapping[str, Any]) -> str:
    lines = [f"- Order #{order.get('number') or order.get('id')} (ID: {order.get('id')})"]
    if order.get("status"):
        lines.append(f"  Status: {order['status']}")
    if order.get("total"):
        lines.append(f"  Total: {order['total']} {order.get('currency', '')}".rstrip())
    billing = order.get("billing") or {}
    customer = " ".join(
        part for part in (billing.get("first_name"), billing.get("last_name")) if part
    )
    if customer:
        lines.append(f"  Customer: {customer}")
    if billing.get("email"):
        lines.append(f"  Email: {billing['email']}")
    if order.get("date_created"):
        lines.append(f"  Created: {order['date_created']}")
    items = order.get("line_items") or []
    for item in items:
        lines.append(f"  * {item.get('name')} x{item.get('quantity')}")
    return "\n".join(lines)


def _listing(heading: str, page_number: int, page: Page, formatter, empty: str) -> str:
    body = "\n\n".join(formatter(item) for item in page) or empty
    text = f"{heading} (page {page_number}):\n{body}"
    if page.next_cursor:
        text += f"\n\nNext page: {page.next_cursor}"
    return text


# ============================================================================
# TOOL SET
# ============================================================================


class WooCommerceToolSet(ToolSet):
    """Tools over a WooCommercePort."""

    key = "woocommerce"
    server_name = "woocommerce-mcp-server"
    version = "0.1.0"
    aliases = ("WOOCOMMERCE",)

    def __init__(self, client: WooCommercePort):
        super().__init__()
        self.client = client

        self.register(LIST_PRODUCTS, self._list_products, failure="Failed to fetch products")
        self.register(GET_PRODUCT, self._get_product, failure="Failed to fetch product")
        self.register(CREATE_PRODUCT, self._create_product, failure="Failed to create product")
        self.register(UPDATE_PRODUCT, self._update_product, failure="Failed to update product")
        self.register(DELETE_PRODUCT, self._delete_product, failure="Failed to delete product")
        self.register(LIST_ORDERS, self._list_orders, failure="Failed to fetch orders")
        self.register(GET_ORDER, self._get_order, failure="Failed to fetch order")
        self.register(
            UPDATE_ORDER_STATUS,
            self._update_order_status,
            failure="Failed to update order status",
        )

    async def close(self) -> None:
        await self.client.close()

    @staticmethod
    def _paging(args: dict[str, Any]) -> tuple[int, int]:
        page = optional_int(args, "page", minimum=1) or 1
        per_page = optional_int(args, "per_page", minimum=1, maximum=MAX_PER_PAGE) or 10
        return page, per_page

    @staticmethod
    def _product_payload(args: dict[str, Any]) -> dict[str, Any]:
        data: dict[str, Any] = {}
        name = optional_str(args, "name")
        if name:
            data["name"] = name
        product_type = optional_choice(args, "type", PRODUCT_TYPES)
        if product_type:
            data["type"] = product_type
        status = optional_choice(args, "status", PRODUCT_STATUSES)
        if status:
            data["status"] = status
        for key in ("regular_price", "sale_price"):
            value = args.get(key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ArgumentError(f"'{key}' must be a string")
            data[key] = str(value)
        for key in ("description", "short_description", "sku"):
            value = optional_str(args, key)
            if value is not None:
                data[key] = value
        stock_quantity = optional_int(args, "stock_quantity", minimum=0)
        if stock_quantity is not None:
            data["stock_quantity"] = stock_quantity
        manage_stock = optional_bool(args, "manage_stock")
        if manage_stock is not None:
            data["manage_stock"] = manage_stock
        categories = args.get("categories")
        if categories is not None:
            ids = [parse_id(c) for c in categories] if isinstance(categories, list) else [None]
            if None in ids:
                raise ArgumentError("'categories' must be an array of category IDs")
            data["categories"] = [{"id": category_id} for category_id in ids]
        images = optional_str_list(args, "images")
        if images is not None:
            data["images"] = [{"src": src} for src in images]
        return data

    async def _list_products(self, args: dict[str, Any]) -> str:
        page, per_page = self._paging(args)
        result = await self.client.list_products(
            page=page,
            per_page=per_page,
            search=optional_str(args, "search") or None,
            status=optional_choice(args, "status", PRODUCT_STATUSES),
        )
        return _listing("Products", page, result, format_product, "No products found")

    async def _get_product(self, args: dict[str, Any]) -> str | ToolResult:
        product_id = parse_id(args.get("productId"))
        if product_id is None:
            return ToolResult.failure("Invalid product ID")
        product = await self.client.get_product(product_id)
        return f"Product details:\n{format_product(product)}"

    async def _create_product(self, args: dict[str, Any]) -> str:
        require_str(args, "name")
        product = await self.client.create_product(self._product_payload(args))
        logger.info(
            f"Created product {product.get('id')}",
            extra={"product_id": product.get("id")},
        )
        return f"Product created successfully:\n{format_product(product)}"

    async def _update_product(self, args: dict[str, Any]) -> str | ToolResult:
        product_id = parse_id(args.get("productId"))
        if product_id is None:
            return ToolResult.failure("Invalid product ID")
        product = await self.client.update_product(product_id, self._product_payload(args))
        return f"Product updated successfully:\n{format_product(product)}"

    async def _delete_product(self, args: dict[str, Any]) -> str | ToolResult:
        product_id = parse_id(args.get("productId"))
        if product_id is None:
            return ToolResult.failure("Invalid product ID")
        deleted = await self.client.delete_product(product_id, force=True)
        logger.info(f"Deleted product {product_id}", extra={"product_id": product_id})
        text = f"Product ID {product_id} deleted successfully."
        if deleted.get("name"):
            text += f"\nName: {deleted['name']}"
        return text

    async def _list_orders(self, args: dict[str, Any]) -> str:
        page, per_page = self._paging(args)
        result = await self.client.list_orders(
            page=page,
            per_page=per_page,
            status=optional_choice(args, "status", ORDER_STATUSES),
            customer=optional_int(args, "customer", minimum=0),
        )
        return _listing("Orders", page, result, format_order, "No orders found")

    async def _get_order(self, args: dict[str, Any]) -> str | ToolResult:
        order_id = parse_id(args.get("orderId"))
        if order_id is None:
            return ToolResult.failure("Invalid order ID")
        order = await self.client.get_order(order_id)
        return f"Order details:\n{format_order(order)}"

    async def _update_order_status(self, args: dict[str, Any]) -> str | ToolResult:
        order_id = parse_id(args.get("orderId"))
        if order_id is None:
            return ToolResult.failure("Invalid order ID")
        status = optional_choice(args, "status", ORDER_STATUSES)
        if status is None:
            raise ArgumentError("'status' is required")
        order = await self.client.update_order(order_id, {"status": status})
        return f"Order {order_id} status updated to {order.get('status', status)}.\n{format_order(order)}"
