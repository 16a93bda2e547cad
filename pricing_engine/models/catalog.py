"""Catalog and promo table row type definitions."""

from datetime import datetime
from typing import Any, Literal, TypedDict


class VariantPriceRow(TypedDict):
    """Row of the variant_prices table.

    A variant has one base row (min_quantity null or 1) per currency plus
    any number of bulk tier rows.
    """

    id: str
    variant_id: str
    amount: int
    currency_code: str
    min_quantity: int | None
    max_quantity: int | None


class ProductVariantRow(TypedDict):
    """Row of the product_variants table.

    Admin variant discounts live in metadata as `discount` (percent, or
    minor units for fixed) and `discount_type`.
    """

    id: str
    product_id: str
    title: str
    metadata: dict[str, Any] | None


class PwpRuleRow(TypedDict):
    """Row of the pwp_rules table."""

    id: str
    name: str
    trigger_type: Literal["product", "cart_value"]
    trigger_product_id: str | None
    trigger_cart_value: int | None
    reward_product_id: str | None
    reward_variant_id: str | None
    reward_type: Literal["percentage", "fixed"]
    reward_value: float
    status: Literal["active", "non-active"]
    starts_at: datetime | None
    ends_at: datetime | None
