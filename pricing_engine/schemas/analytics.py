"""Revenue analytics Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

RevenuePeriod = Literal["today", "yesterday", "7days", "month", "year"]
ChangeDirection = Literal["up", "down", "neutral"]


class RevenueStats(BaseModel):
    """Revenue figures for one reporting window."""

    start: datetime = Field(description="Inclusive window start")
    end: datetime = Field(description="Exclusive window end")
    net: int = Field(default=0, description="Net revenue after all discounts, including shipping")
    gross: int = Field(default=0, description="Revenue at original prices")
    discounts: int = Field(default=0, description="Item and order discounts")
    shipping: int = Field(default=0, description="Effective shipping charged")
    orders_count: int = Field(default=0, description="Orders counted")
    items_count: int = Field(default=0, description="Units sold")
    average_order_value: int = Field(default=0, description="Net revenue per order")
    skipped_orders: list[str] = Field(default_factory=list, description="Orders that could not be reconstructed")


class RevenueChange(BaseModel):
    """Change from the previous window."""

    percent: float = Field(default=0.0, ge=0, description="Magnitude of the change in percent")
    direction: ChangeDirection = "neutral"


class RevenueSummary(BaseModel):
    """Response schema for GET /analytics/revenue."""

    period: RevenuePeriod
    currency: str
    current: RevenueStats
    previous: RevenueStats
    revenue_change: RevenueChange
    orders_change: RevenueChange
