"""Request and response schemas for the pricing, cart and order endpoints."""

from pydantic import BaseModel, Field

from pricing_engine.schemas.order import Order, OrderTotals
from pricing_engine.schemas.pricing import PriceSchedule, PwpRule, VariantDiscount
from pricing_engine.schemas.sync import SyncReport


class TierResolveRequest(BaseModel):
    """Request schema for resolving a quantity against a schedule."""

    schedule: PriceSchedule = Field(description="Schedule to resolve against")
    quantity: int = Field(gt=0, description="Line quantity")


class ComposeRequest(BaseModel):
    """Request schema for composing a line's unit price from explicit inputs."""

    base_price: int = Field(ge=0, description="Variant base price in minor units")
    quantity: int = Field(gt=0, description="Line quantity")
    schedule: PriceSchedule | None = Field(default=None, description="Bulk tier schedule")
    pwp_rule: PwpRule | None = Field(default=None, description="PWP rule when the line is a reward")
    variant_discount: VariantDiscount | None = Field(default=None, description="Admin variant discount")


class LinePriceRequest(BaseModel):
    """Request schema for pricing a catalog variant at a quantity."""

    variant_id: str = Field(description="Catalog variant")
    quantity: int = Field(gt=0, description="Line quantity")
    currency: str | None = Field(default=None, description="Currency code, defaults to the store currency")
    pwp_rule_id: str | None = Field(default=None, description="PWP rule when adding a reward line")


class PricedCart(BaseModel):
    """Response schema for a re-priced cart."""

    cart: Order = Field(description="Cart with live unit prices and annotations")
    totals: OrderTotals = Field(description="Aggregated cart totals")
    repriced_items: list[str] = Field(default_factory=list, description="Lines whose price or annotation changed")
    skipped_items: list[str] = Field(default_factory=list, description="Lines with no live price")


class SyncCheckResponse(BaseModel):
    """Response schema for the pre-checkout sync check."""

    report: SyncReport
    message: str | None = Field(default=None, description="Customer-facing summary when the cart drifted")


class OrderTotalsResponse(BaseModel):
    """Response schema for GET /orders/{order_id}/totals."""

    order_id: str
    currency: str
    totals: OrderTotals
    display: dict[str, str] = Field(default_factory=dict, description="Formatted amounts for display")
