"""Refund allocation Pydantic schemas for the returns workflow."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from pricing_engine.schemas.order import DiscountBreakdown


class ReturnItemRequest(BaseModel):
    """Units of one line the customer wants to return."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    item_id: str = Field(description="Line item identifier")
    quantity: int = Field(gt=0, description="Units to return")


class RefundQuoteRequest(BaseModel):
    """Request schema for POST /orders/{order_id}/refund-quote."""

    items: list[ReturnItemRequest] = Field(min_length=1, description="Lines and quantities to return")


class RefundAllocation(BaseModel):
    """Refund owed for returning some units of one line."""

    model_config = ConfigDict(frozen=True)

    item_id: str = Field(description="Line item identifier")
    variant_id: str | None = Field(default=None, description="Catalog variant")
    quantity: int = Field(description="Units returned in this request")
    original_quantity: int = Field(description="Units on the original line")
    returned_quantity: int = Field(description="Units returned before this request")
    item_actual_paid_total: int = Field(description="What the customer paid for the whole line")
    refund_per_unit: int = Field(description="Floor of the line total per unit")
    refund_remainder: int = Field(description="Minor units added to the last unit returned")
    includes_last_unit: bool = Field(description="Whether this request returns the line's final unit")
    refund_amount: int = Field(description="Refund for the units in this request")


class RefundLine(BaseModel):
    """Refund figures for one returnable line of an order."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    variant_id: str | None = None
    title: str = ""
    unit_price: int = Field(description="Charged unit price")
    original_quantity: int
    returned_quantity: int
    returnable_quantity: int
    refund_per_unit: int
    refund_remainder: int
    refund_total: int = Field(description="Refund for every returnable unit still on the line")
    item_actual_paid_total: int


class DiscountInfo(BaseModel):
    """Discount summary shown alongside a refund plan."""

    model_config = ConfigDict(frozen=True)

    original_order_total: int = Field(description="Gross at original prices")
    coupon_code: str | None = None
    points_redeemed: int = 0
    tier_slug: str | None = None
    breakdown: DiscountBreakdown
    total_discounts: int
    shipping: int
    actual_paid_for_items: int
    refundable_pool: int = Field(description="Amount spread across lines")
    shipping_refund: int = Field(default=0, description="Part of the refundable pool that is shipping")


class RefundPlan(BaseModel):
    """Everything the returns screen needs to build a refund."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    can_return: bool = True
    reason: str | None = None
    days_remaining: int | None = None
    delivered_at: datetime | None = None
    returnable_items: list[RefundLine] = Field(default_factory=list)
    discount_info: DiscountInfo | None = None


class RefundQuote(BaseModel):
    """Response schema for POST /orders/{order_id}/refund-quote."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    allocations: list[RefundAllocation]
    total_refund: int = Field(description="Sum of every allocation in minor units")
