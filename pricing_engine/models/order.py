"""Order table row type definitions for database operations."""

from datetime import datetime
from typing import Any, Literal, TypedDict

# Order status enum values matching database enum
OrderStatus = Literal["pending", "completed", "canceled", "refunded"]

ReturnStatus = Literal["pending", "approved", "rejected", "cancelled", "completed"]


class LineItemRow(TypedDict, total=False):
    """Structure for a single line item in an order.

    Stored as part of the items JSONB array. Newer rows carry a typed
    `annotation`; older rows carry discount flags in `metadata`.
    """

    id: str
    variant_id: str | None
    title: str
    quantity: int
    unit_price: int
    annotation: dict[str, Any] | None
    metadata: dict[str, Any] | None
    adjustments: list[dict[str, Any]]


class OrderRow(TypedDict, total=False):
    """Order table row representation.

    Order-level discounts are stored in `order_discounts`; older rows cache
    them in `metadata` instead.
    """

    id: str
    status: OrderStatus
    currency: str
    items: list[LineItemRow]
    order_discounts: dict[str, Any] | None
    shipping: dict[str, Any] | None
    metadata: dict[str, Any] | None
    created_at: datetime
    delivered_at: datetime | None


class ReturnRequestItem(TypedDict):
    """One line of a return request."""

    item_id: str
    quantity: int


class ReturnRequestRow(TypedDict):
    """Row of the return_requests table."""

    id: str
    order_id: str
    status: ReturnStatus
    items: list[ReturnRequestItem]
    refund_amount: int
    shipping_refund: int
