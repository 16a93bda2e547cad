"""Net revenue reporting over finalized orders."""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from pricing_engine.core.config import Settings, get_settings
from pricing_engine.core.exceptions import MissingAnnotationError
from pricing_engine.core.money import round_half_up
from pricing_engine.schemas.analytics import RevenueChange, RevenuePeriod, RevenueStats, RevenueSummary
from pricing_engine.schemas.order import Order
from pricing_engine.services.order_aggregator import aggregate
from pricing_engine.services.order_service import OrderService

logger = logging.getLogger(__name__)


def _add_months(moment: datetime, months: int) -> datetime:
    index = moment.year * 12 + moment.month - 1 + months
    return moment.replace(year=index // 12, month=index % 12 + 1, day=1)


def period_windows(period: RevenuePeriod, now: datetime) -> tuple[datetime, datetime, datetime, datetime]:
    """Compute the current and previous reporting windows.

    Windows are half-open and aligned to UTC midnight.

    Args:
        period: Reporting period.
        now: Reference time.

    Returns:
        Tuple of (current_start, current_end, previous_start, previous_end).
    """
    today = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    day = timedelta(days=1)

    if period == "yesterday":
        return today - day, today, today - 2 * day, today - day
    if period == "7days":
        return today - 6 * day, today + day, today - 13 * day, today - 6 * day
    if period == "month":
        start = today.replace(day=1)
        return start, _add_months(start, 1), _add_months(start, -1), start
    if period == "year":
        start = today.replace(month=1, day=1)
        return start, start.replace(year=start.year + 1), start.replace(year=start.year - 1), start
    return today, today + day, today - day, today


def summarize_orders(rows: list[dict[str, Any]], start: datetime, end: datetime) -> RevenueStats:
    """Aggregate order rows into revenue figures.

    Canceled orders and orders with no gross are ignored. Orders whose
    original prices cannot be reconstructed are skipped and reported.

    Args:
        rows: Raw order rows.
        start: Window start, echoed in the result.
        end: Window end, echoed in the result.

    Returns:
        RevenueStats: Window totals.
    """
    stats = RevenueStats(start=start, end=end)
    for row in rows:
        if row.get("status") == "canceled":
            continue
        try:
            order = Order.model_validate(row)
            totals = aggregate(order)
        except (MissingAnnotationError, ValidationError) as e:
            logger.warning("Skipping order %s in revenue report: %s", row.get("id"), e)
            stats.skipped_orders.append(str(row.get("id")))
            continue

        if totals.gross <= 0:
            continue
        stats.gross += totals.gross
        stats.net += totals.net
        stats.discounts += totals.total_discounts
        stats.shipping += totals.shipping
        stats.orders_count += 1
        stats.items_count += sum(item.quantity for item in order.items)

    if stats.orders_count:
        stats.average_order_value = round_half_up(Decimal(stats.net) / stats.orders_count)
    return stats


def compare(current: int, previous: int) -> RevenueChange:
    """Percentage change from the previous window to the current one."""
    if previous > 0:
        percent = (Decimal(current - previous) / previous) * 100
        if percent > 0:
            direction = "up"
        elif percent < 0:
            direction = "down"
        else:
            direction = "neutral"
        return RevenueChange(percent=round(float(abs(percent)), 2), direction=direction)
    if current > 0:
        return RevenueChange(percent=100.0, direction="up")
    return RevenueChange()


class RevenueService:
    """Service for net revenue reporting."""

    def __init__(self, orders: OrderService | None = None, settings: Settings | None = None) -> None:
        """Initialize revenue service.

        Args:
            orders: Optional order service for testing.
            settings: Optional settings override.
        """
        self.orders = orders or OrderService()
        self.settings = settings or get_settings()

    async def summarize(self, period: RevenuePeriod = "today", now: datetime | None = None) -> RevenueSummary:
        """Summarize revenue for a period against the period before it.

        Args:
            period: Reporting period.
            now: Clock override.

        Returns:
            RevenueSummary: Current and previous figures with the change between them.
        """
        now = now or datetime.now(timezone.utc)
        current_start, current_end, previous_start, previous_end = period_windows(period, now)

        current_rows = await self.orders.list_orders_between(current_start, current_end)
        previous_rows = await self.orders.list_orders_between(previous_start, previous_end)

        current = summarize_orders(current_rows, current_start, current_end)
        previous = summarize_orders(previous_rows, previous_start, previous_end)

        currency = next(
            (row["currency"] for row in current_rows if row.get("currency") and row.get("status") != "canceled"),
            self.settings.default_currency,
        )

        logger.info(
            "Revenue %s: net %d over %d orders (previous %d over %d)",
            period,
            current.net,
            current.orders_count,
            previous.net,
            previous.orders_count,
        )

        return RevenueSummary(
            period=period,
            currency=currency,
            current=current,
            previous=previous,
            revenue_change=compare(current.net, previous.net),
            orders_change=compare(current.orders_count, previous.orders_count),
        )
