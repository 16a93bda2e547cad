"""Order store access for totals, returns and reporting."""

import logging
from collections import Counter
from datetime import datetime

from pricing_engine.core.supabase import get_supabase_client
from pricing_engine.models.order import OrderRow, ReturnRequestRow
from pricing_engine.schemas.order import Order

logger = logging.getLogger(__name__)

# Return requests in these states no longer hold units
INACTIVE_RETURN_STATUSES = frozenset({"rejected", "cancelled"})


class OrderService:
    """Service for reading finalized orders and their returns."""

    def __init__(self) -> None:
        """Initialize order service."""
        self.client = get_supabase_client()

    async def get_order_row(self, order_id: str) -> OrderRow | None:
        """Get an order row by ID.

        Args:
            order_id: The order's identifier.

        Returns:
            OrderRow | None: The order data or None if not found.
        """
        response = (
            self.client.table("orders")
            .select("*")
            .eq("id", order_id)
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def get_order(self, order_id: str) -> Order | None:
        """Get an order as the engine's Order model."""
        row = await self.get_order_row(order_id)
        if row is None:
            return None
        return Order.model_validate(row)

    async def list_orders_between(self, start: datetime, end: datetime) -> list[OrderRow]:
        """List order rows created in [start, end).

        Args:
            start: Inclusive window start.
            end: Exclusive window end.

        Returns:
            list[OrderRow]: Raw order rows, newest first.
        """
        response = (
            self.client.table("orders")
            .select("*")
            .gte("created_at", start.isoformat())
            .lt("created_at", end.isoformat())
            .order("created_at", desc=True)
            .execute()
        )

        return response.data or []

    async def get_returned_quantities(self, order_id: str) -> dict[str, int]:
        """Units of each line already claimed by return requests.

        Rejected and cancelled requests release their units.

        Args:
            order_id: The order's identifier.

        Returns:
            dict[str, int]: Returned units by line item id.
        """
        response = (
            self.client.table("return_requests")
            .select("id, status, items")
            .eq("order_id", order_id)
            .execute()
        )

        requests: list[ReturnRequestRow] = response.data or []
        returned: Counter = Counter()
        for request in requests:
            if request.get("status") in INACTIVE_RETURN_STATUSES:
                continue
            for entry in request.get("items") or []:
                returned[entry["item_id"]] += int(entry.get("quantity") or 0)

        return dict(returned)
