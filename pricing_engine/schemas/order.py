"""Order and cart Pydantic schemas used by the pricing engine.

Stored rows map 1:1 onto these models. Rows written before typed
annotations existed keep their discount flags in a free-form `metadata`
dict; the `before` validators below lift those flags into annotations so
the engine only ever sees one representation.
"""

from collections import Counter
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pricing_engine.models.order import OrderStatus
from pricing_engine.schemas.pricing import DiscountAnnotation

# Adjustment codes written for PWP rewards by older carts
LEGACY_PWP_ADJUSTMENT_PREFIX = "PWP_"


def annotation_from_metadata(metadata: dict[str, Any], unit_price: int) -> dict[str, Any] | None:
    """Translate legacy line item metadata flags into an annotation dict.

    Args:
        metadata: The item's stored metadata.
        unit_price: The item's charged unit price.

    Returns:
        dict | None: Annotation payload, or None if no discount flag is set.
    """
    if metadata.get("is_pwp_item"):
        original = int(metadata.get("pwp_original_price") or 0)
        discount = int(metadata.get("pwp_discount_amount") or 0)
        return {
            "kind": "pwp",
            "rule_id": str(metadata.get("pwp_rule_id") or ""),
            "original_price": original,
            "discount_amount": discount,
        }

    if metadata.get("is_variant_discount"):
        discount = int(metadata.get("variant_discount_amount") or 0)
        original = metadata.get("original_unit_price")
        return {
            "kind": "variant_discount",
            "original_unit_price": int(original) if original else unit_price + discount,
            "discount_amount": discount,
            "discount_type": metadata.get("variant_discount_type"),
        }

    if metadata.get("is_bulk_price"):
        original = metadata.get("original_unit_price") or metadata.get("original_price")
        return {
            "kind": "bulk_tier",
            "is_bulk_price": True,
            "min_quantity": metadata.get("bulk_min_quantity"),
            "original_price": int(original) if original else None,
        }

    return None


class LineAdjustment(BaseModel):
    """Per-item adjustment record (coupon discount as stored by the cart)."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    code: str = Field(default="", description="Promotion code")
    amount: int = Field(ge=0, description="Discount amount in minor units")

    @property
    def is_legacy_pwp(self) -> bool:
        return self.code.startswith(LEGACY_PWP_ADJUSTMENT_PREFIX)


class LineItem(BaseModel):
    """A cart or order line."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(description="Line item identifier")
    variant_id: str | None = Field(default=None, description="Catalog variant")
    title: str = Field(default="", description="Display title")
    quantity: int = Field(gt=0, description="Units on the line")
    unit_price: int = Field(ge=0, description="Price actually charged per unit")
    annotation: DiscountAnnotation | None = Field(default=None, description="Discount that set unit_price")
    adjustments: tuple[LineAdjustment, ...] = Field(default=(), description="Coupon adjustment records")

    @model_validator(mode="before")
    @classmethod
    def lift_legacy_metadata(cls, data: Any) -> Any:
        """Build the annotation from metadata flags when none is stored."""
        if isinstance(data, dict) and data.get("annotation") is None and data.get("metadata"):
            annotation = annotation_from_metadata(data["metadata"], int(data.get("unit_price") or 0))
            if annotation is not None:
                data = {**data, "annotation": annotation}
        return data

    @property
    def is_pwp(self) -> bool:
        return self.annotation is not None and self.annotation.kind == "pwp"

    @property
    def coupon_adjustment_total(self) -> int:
        """Sum of coupon adjustments, ignoring legacy PWP records."""
        return sum(adj.amount for adj in self.adjustments if not adj.is_legacy_pwp)


class CouponDiscount(BaseModel):
    """Coupon discount computed by the coupon engine."""

    model_config = ConfigDict(frozen=True)

    code: str | None = Field(default=None, description="Coupon code")
    amount: int = Field(default=0, ge=0, description="Discount in minor units")


class PointsDiscount(BaseModel):
    """Loyalty points redemption computed by the points ledger."""

    model_config = ConfigDict(frozen=True)

    redeemed: int = Field(default=0, ge=0, description="Points redeemed")
    amount: int = Field(default=0, ge=0, description="Discount in minor units")


class MembershipPromoDiscount(BaseModel):
    """Membership promotional offer discount."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Promo identifier")
    amount: int = Field(default=0, ge=0, description="Discount in minor units")


class MembershipTierDiscount(BaseModel):
    """Automatic membership tier discount."""

    model_config = ConfigDict(frozen=True)

    slug: str | None = Field(default=None, description="Tier slug")
    amount: int = Field(default=0, ge=0, description="Discount in minor units")


class OrderDiscounts(BaseModel):
    """Order-scoped discounts, each pre-computed by its issuing engine."""

    model_config = ConfigDict(frozen=True)

    coupon: CouponDiscount | None = None
    points: PointsDiscount | None = None
    membership_promo: MembershipPromoDiscount | None = None
    membership_tier: MembershipTierDiscount | None = None


class Shipping(BaseModel):
    """Shipping charge on an order."""

    model_config = ConfigDict(frozen=True)

    raw_amount: int = Field(default=0, ge=0, description="Selected shipping rate")
    free_shipping_applied: bool = Field(default=False, description="Whether a free shipping offer applied")

    @property
    def effective_amount(self) -> int:
        return 0 if self.free_shipping_applied else self.raw_amount


def _discounts_from_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Lift order-level discount figures cached in legacy order metadata."""
    discounts: dict[str, Any] = {}
    if metadata.get("applied_coupon_discount") or metadata.get("coupon_code"):
        discounts["coupon"] = {
            "code": metadata.get("coupon_code"),
            "amount": int(metadata.get("applied_coupon_discount") or 0),
        }
    if metadata.get("points_discount_amount"):
        discounts["points"] = {
            "redeemed": int(metadata.get("points_to_redeem") or 0),
            "amount": int(metadata["points_discount_amount"]),
        }
    if metadata.get("applied_membership_promo_discount"):
        discounts["membership_promo"] = {
            "id": metadata.get("applied_membership_promo_id"),
            "amount": int(metadata["applied_membership_promo_discount"]),
        }
    if metadata.get("tier_discount_amount"):
        discounts["membership_tier"] = {
            "slug": metadata.get("tier_slug"),
            "amount": int(metadata["tier_discount_amount"]),
        }
    return discounts


class Order(BaseModel):
    """A cart being priced, or a finalized order being reconstructed."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(default="", description="Order or cart identifier")
    items: tuple[LineItem, ...] = Field(default=(), description="Line items")
    order_discounts: OrderDiscounts = Field(default_factory=OrderDiscounts)
    shipping: Shipping = Field(default_factory=Shipping)
    currency: str = Field(default="myr", description="Currency code")
    status: OrderStatus = Field(default="pending", description="Order status")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    delivered_at: datetime | None = Field(default=None, description="Delivery timestamp")

    @model_validator(mode="before")
    @classmethod
    def lift_legacy_metadata(cls, data: Any) -> Any:
        """Fill order discounts and shipping from cached metadata when absent."""
        if not isinstance(data, dict) or not data.get("metadata"):
            return data
        metadata = data["metadata"]
        data = dict(data)
        if data.get("order_discounts") is None:
            data["order_discounts"] = _discounts_from_metadata(metadata)
        if data.get("shipping") is None:
            easyparcel = metadata.get("easyparcel_shipping") or {}
            data["shipping"] = {
                "raw_amount": int(easyparcel.get("price") or metadata.get("shipping_amount") or 0),
                "free_shipping_applied": metadata.get("free_shipping_applied") is True,
            }
        return data

    @model_validator(mode="after")
    def check_unique_item_ids(self) -> "Order":
        """Reject orders whose lines share an id; totals are keyed by line id."""
        counts = Counter(item.id for item in self.items)
        duplicates = sorted(item_id for item_id, count in counts.items() if count > 1)
        if duplicates:
            raise ValueError(f"Duplicate line item ids: {', '.join(duplicates)}")
        return self

    def get_item(self, item_id: str) -> LineItem | None:
        """Find a line by id."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None


class DiscountBreakdown(BaseModel):
    """Per-source discount amounts for an order."""

    model_config = ConfigDict(frozen=True)

    pwp: int = 0
    variant: int = 0
    bulk: int = 0
    coupon: int = 0
    points: int = 0
    membership_promo: int = 0
    membership_tier: int = 0


class OrderTotals(BaseModel):
    """Aggregated money figures for an order."""

    model_config = ConfigDict(frozen=True)

    gross: int = Field(description="Sum of original prices times quantity")
    item_discounts: int = Field(description="PWP, variant and bulk discounts")
    order_discounts: int = Field(description="Coupon, points, membership promo and tier discounts")
    shipping: int = Field(description="Effective shipping")
    net: int = Field(description="What the customer pays including shipping")
    item_net: int = Field(description="What the customer pays for merchandise alone")
    breakdown: DiscountBreakdown = Field(default_factory=DiscountBreakdown)

    @property
    def total_discounts(self) -> int:
        return self.item_discounts + self.order_discounts
