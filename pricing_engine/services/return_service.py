"""Returns workflow: refund plans and refund quotes for finalized orders."""

import logging
from datetime import datetime, timezone

from pricing_engine.core.config import Settings, get_settings
from pricing_engine.core.money import Money
from pricing_engine.schemas.order import Order, OrderTotals
from pricing_engine.schemas.refund import RefundPlan, RefundQuote, ReturnItemRequest
from pricing_engine.services.catalog_service import CatalogService
from pricing_engine.services.order_aggregator import aggregate
from pricing_engine.services.order_service import OrderService
from pricing_engine.services.refund_allocator import allocate_refund, build_refund_lines

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReturnService:
    """Service computing what a customer gets back when returning items."""

    def __init__(
        self,
        orders: OrderService | None = None,
        catalog: CatalogService | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize return service.

        Args:
            orders: Optional order service for testing.
            catalog: Optional catalog service for testing.
            settings: Optional settings override.
        """
        self.orders = orders or OrderService()
        self.catalog = catalog or CatalogService()
        self.settings = settings or get_settings()

    def check_eligibility(self, order: Order, now: datetime | None = None) -> tuple[bool, str | None, int | None]:
        """Decide whether an order can still be returned.

        Args:
            order: Finalized order.
            now: Clock override.

        Returns:
            Tuple of (can_return, reason, days_remaining).
        """
        if order.status == "canceled":
            return False, "Order was canceled", None
        if order.status == "refunded":
            return False, "Order has already been refunded", None
        if order.delivered_at is None:
            return False, "Order has not been delivered yet", None

        now = _as_utc(now or datetime.now(timezone.utc))
        days_since = (now - _as_utc(order.delivered_at)).days
        days_remaining = self.settings.return_window_days - days_since
        if days_remaining < 0:
            return False, f"Return window of {self.settings.return_window_days} days has expired", 0
        return True, None, days_remaining

    async def _legacy_base_prices(self, order: Order) -> dict[str, Money]:
        """Base prices for bulk lines written before original prices were stored."""
        variant_ids = [
            item.variant_id
            for item in order.items
            if item.variant_id
            and item.annotation is not None
            and item.annotation.kind == "bulk_tier"
            and item.annotation.original_price is None
        ]
        if not variant_ids:
            return {}
        logger.info("Order %s has %d legacy bulk lines; using catalog base prices", order.id, len(variant_ids))
        schedules = await self.catalog.get_price_schedules(variant_ids, order.currency)
        return {variant_id: schedule.base_price for variant_id, schedule in schedules.items()}

    async def get_order_totals(self, order_id: str) -> tuple[Order, OrderTotals] | None:
        """Aggregate a stored order, pricing legacy bulk lines from the catalog.

        Args:
            order_id: The order's identifier.

        Returns:
            tuple | None: The order and its totals, or None if it does not exist.

        Raises:
            MissingAnnotationError: If a line's original price cannot be recovered.
        """
        order = await self.orders.get_order(order_id)
        if order is None:
            return None
        return order, aggregate(order, await self._legacy_base_prices(order))

    async def get_refund_plan(self, order_id: str, now: datetime | None = None) -> RefundPlan | None:
        """Build the refund plan shown on the returns screen.

        Args:
            order_id: The order's identifier.
            now: Clock override.

        Returns:
            RefundPlan | None: None if the order does not exist.

        Raises:
            MissingAnnotationError: If a line's original price cannot be recovered.
        """
        order = await self.orders.get_order(order_id)
        if order is None:
            return None

        can_return, reason, days_remaining = self.check_eligibility(order, now)
        if not can_return:
            return RefundPlan(
                order_id=order.id,
                can_return=False,
                reason=reason,
                days_remaining=days_remaining,
                delivered_at=order.delivered_at,
            )

        returned = await self.orders.get_returned_quantities(order.id)
        lines, info = build_refund_lines(
            order,
            returned,
            include_shipping=self.settings.refund_include_shipping,
            base_prices=await self._legacy_base_prices(order),
        )

        if not lines:
            return RefundPlan(
                order_id=order.id,
                can_return=False,
                reason="All items have already been returned",
                days_remaining=days_remaining,
                delivered_at=order.delivered_at,
                discount_info=info,
            )

        return RefundPlan(
            order_id=order.id,
            days_remaining=days_remaining,
            delivered_at=order.delivered_at,
            returnable_items=lines,
            discount_info=info,
        )

    async def quote_refund(
        self,
        order_id: str,
        items: list[ReturnItemRequest],
        now: datetime | None = None,
    ) -> RefundQuote | None:
        """Quote the refund for returning specific units.

        Args:
            order_id: The order's identifier.
            items: Lines and quantities being returned.
            now: Clock override.

        Returns:
            RefundQuote | None: None if the order does not exist.

        Raises:
            ValueError: If the order is no longer returnable.
            ReturnQuantityError: If a request exceeds what remains returnable.
        """
        order = await self.orders.get_order(order_id)
        if order is None:
            return None

        can_return, reason, _ = self.check_eligibility(order, now)
        if not can_return:
            raise ValueError(reason)

        returned = await self.orders.get_returned_quantities(order.id)
        allocations = allocate_refund(
            order,
            items,
            already_returned=returned,
            include_shipping=self.settings.refund_include_shipping,
            base_prices=await self._legacy_base_prices(order),
        )
        return RefundQuote(
            order_id=order.id,
            allocations=allocations,
            total_refund=sum(allocation.refund_amount for allocation in allocations),
        )
