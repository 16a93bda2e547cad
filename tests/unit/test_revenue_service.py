"""Unit tests for revenue reporting."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from pricing_engine.core.config import Settings
from pricing_engine.services.revenue_service import RevenueService, compare, period_windows, summarize_orders

NOW = datetime(2026, 5, 15, 13, 30, tzinfo=timezone.utc)


def utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def order_row(order_id: str, items: list[dict], **fields) -> dict:
    return {"id": order_id, "status": "completed", "currency": "myr", "items": items, **fields}


ROWS = [
    order_row(
        "A",
        [{"id": "a1", "quantity": 1, "unit_price": 10000}],
        order_discounts={"coupon": {"code": "SAVE", "amount": 1000}},
        shipping={"raw_amount": 500},
    ),
    order_row("B", [{"id": "b1", "quantity": 1, "unit_price": 9999}], status="canceled"),
    order_row("C", [{"id": "c1", "quantity": 10, "unit_price": 800, "metadata": {"is_bulk_price": True}}]),
    order_row("D", [{"id": "d1", "quantity": 1, "unit_price": 0}]),
    order_row("E", [{"id": "e1", "quantity": 2, "unit_price": 1500}]),
    order_row("F", [{"id": "f1", "quantity": 0, "unit_price": 1500}]),
]


class TestPeriodWindows:
    """Tests for period_windows."""

    @pytest.mark.parametrize(
        "period,expected",
        [
            ("today", (utc(2026, 5, 15), utc(2026, 5, 16), utc(2026, 5, 14), utc(2026, 5, 15))),
            ("yesterday", (utc(2026, 5, 14), utc(2026, 5, 15), utc(2026, 5, 13), utc(2026, 5, 14))),
            ("7days", (utc(2026, 5, 9), utc(2026, 5, 16), utc(2026, 5, 2), utc(2026, 5, 9))),
            ("month", (utc(2026, 5, 1), utc(2026, 6, 1), utc(2026, 4, 1), utc(2026, 5, 1))),
            ("year", (utc(2026, 1, 1), utc(2027, 1, 1), utc(2025, 1, 1), utc(2026, 1, 1))),
        ],
    )
    def test_windows(self, period: str, expected: tuple) -> None:
        """Test each period's current and previous window."""
        assert period_windows(period, NOW) == expected

    def test_month_across_year_end(self) -> None:
        """Test that December rolls into the next year."""
        start, end, previous_start, _ = period_windows("month", utc(2026, 12, 10))

        assert start == utc(2026, 12, 1)
        assert end == utc(2027, 1, 1)
        assert previous_start == utc(2026, 11, 1)

    def test_january_previous_month(self) -> None:
        """Test that January's previous month is last December."""
        _, _, previous_start, _ = period_windows("month", utc(2026, 1, 20))

        assert previous_start == utc(2025, 12, 1)


class TestSummarizeOrders:
    """Tests for summarize_orders."""

    def test_totals(self) -> None:
        """Test net revenue with canceled, unreconstructable and free orders."""
        stats = summarize_orders(ROWS, utc(2026, 5, 15), utc(2026, 5, 16))

        assert stats.gross == 13000
        assert stats.net == 12500
        assert stats.discounts == 1000
        assert stats.shipping == 500
        assert stats.orders_count == 2
        assert stats.items_count == 3
        assert stats.average_order_value == 6250
        assert stats.skipped_orders == ["C", "F"]

    def test_empty(self) -> None:
        """Test an empty window."""
        stats = summarize_orders([], utc(2026, 5, 15), utc(2026, 5, 16))

        assert stats.net == 0
        assert stats.average_order_value == 0


class TestCompare:
    """Tests for compare."""

    @pytest.mark.parametrize(
        "current,previous,percent,direction",
        [
            (1500, 1000, 50.0, "up"),
            (500, 1000, 50.0, "down"),
            (1000, 1000, 0.0, "neutral"),
            (1, 3, 66.67, "down"),
            (5, 0, 100.0, "up"),
            (0, 0, 0.0, "neutral"),
        ],
    )
    def test_change(self, current: int, previous: int, percent: float, direction: str) -> None:
        """Test magnitude and direction of change."""
        change = compare(current, previous)

        assert change.percent == percent
        assert change.direction == direction


class TestRevenueService:
    """Tests for RevenueService."""

    @pytest.mark.asyncio
    async def test_summarize(self) -> None:
        """Test a period summary against the previous window."""
        orders = MagicMock()
        orders.list_orders_between = AsyncMock(
            side_effect=[ROWS, [order_row("P", [{"id": "p1", "quantity": 1, "unit_price": 5000}])]]
        )
        settings = Settings(supabase_url="https://test.supabase.co", supabase_secret_key="test-secret-key")
        service = RevenueService(orders=orders, settings=settings)

        summary = await service.summarize("today", now=NOW)

        assert summary.currency == "myr"
        assert summary.current.net == 12500
        assert summary.previous.net == 5000
        assert summary.revenue_change.percent == 150.0
        assert summary.revenue_change.direction == "up"
        assert summary.orders_change.percent == 100.0
        first_call = orders.list_orders_between.await_args_list[0]
        assert first_call.args == (utc(2026, 5, 15), utc(2026, 5, 16))

    @pytest.mark.asyncio
    async def test_default_currency_without_orders(self) -> None:
        """Test that an empty window reports the store currency."""
        orders = MagicMock()
        orders.list_orders_between = AsyncMock(return_value=[])
        settings = Settings(
            supabase_url="https://test.supabase.co",
            supabase_secret_key="test-secret-key",
            default_currency="SGD",
        )

        summary = await RevenueService(orders=orders, settings=settings).summarize("month", now=NOW)

        assert summary.currency == "sgd"
        assert summary.revenue_change.direction == "neutral"
