"""Pricing Pydantic schemas: tiers, schedules, discount rules and annotations."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, computed_field, field_validator

DiscountType = Literal["percentage", "fixed"]
PriceSource = Literal["pwp", "bulk_tier", "variant_discount", "base"]


class PriceTier(BaseModel):
    """A quantity-break price for a variant."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    min_quantity: int = Field(ge=1, description="Lowest quantity the tier applies to")
    max_quantity: int | None = Field(default=None, ge=1, description="Highest quantity, None for unbounded")
    unit_price: int = Field(ge=0, description="Tier unit price in minor units")

    def matches(self, quantity: int) -> bool:
        """Check whether a quantity falls inside this tier."""
        if quantity < self.min_quantity:
            return False
        return self.max_quantity is None or quantity <= self.max_quantity


class PriceSchedule(BaseModel):
    """A variant's base price plus its bulk tiers.

    Overlaps are deliberately not rejected here: the tier resolver validates
    the schedule so misconfiguration surfaces at resolve time.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    variant_id: str | None = Field(default=None, description="Variant the schedule belongs to")
    currency: str = Field(default="myr", description="Currency of every amount in the schedule")
    base_price: int = Field(ge=0, description="Standalone unit price in minor units")
    tiers: tuple[PriceTier, ...] = Field(default=(), description="Bulk tiers")

    @classmethod
    def from_price_rows(
        cls,
        rows: list[dict[str, Any]],
        currency: str,
        variant_id: str | None = None,
    ) -> "PriceSchedule | None":
        """Build a schedule from raw catalog price rows.

        The row with no minimum (or a minimum of 1) is the base price; rows
        with a minimum above 1 are bulk tiers. Rows in other currencies are
        ignored.

        Args:
            rows: Rows with amount, currency_code, min_quantity, max_quantity.
            currency: Currency to select.
            variant_id: Optional variant identifier to stamp on the schedule.

        Returns:
            PriceSchedule | None: None when no base price exists for the currency.
        """
        currency = currency.lower()
        base_price: int | None = None
        tiers: list[PriceTier] = []

        for row in rows:
            if str(row.get("currency_code", "")).lower() != currency:
                continue
            min_qty = row.get("min_quantity")
            amount = int(row["amount"])
            if not min_qty or int(min_qty) <= 1:
                if base_price is None:
                    base_price = amount
                continue
            max_qty = row.get("max_quantity")
            tiers.append(
                PriceTier(
                    min_quantity=int(min_qty),
                    max_quantity=int(max_qty) if max_qty else None,
                    unit_price=amount,
                )
            )

        if base_price is None:
            return None

        return cls(
            variant_id=variant_id,
            currency=currency,
            base_price=base_price,
            tiers=tuple(sorted(tiers, key=lambda t: t.min_quantity)),
        )


class VariantDiscount(BaseModel):
    """Blanket admin discount set on a variant, independent of quantity."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    discount_type: DiscountType = Field(description="percentage or fixed")
    value: Decimal = Field(ge=0, description="Percent off, or minor units off for fixed")


class PwpRule(BaseModel):
    """Purchase-with-purchase offer as supplied by the promo engine."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(description="Rule identifier")
    name: str = Field(default="", description="Display name")
    trigger_type: Literal["cart_value", "product"] = Field(description="What unlocks the reward")
    trigger_value: int | str | None = Field(
        default=None,
        description="Minimum cart value in minor units, or the trigger product id",
    )
    reward_variant_id: str | None = Field(default=None, description="Variant offered as the reward")
    discount_type: DiscountType = Field(description="percentage or fixed")
    discount_value: Decimal = Field(ge=0, description="Percent off, or minor units off for fixed")
    status: Literal["active", "non-active"] = Field(default="active", description="Rule status")
    starts_at: datetime | None = Field(default=None, description="Offer start")
    ends_at: datetime | None = Field(default=None, description="Offer end")

    @field_validator("trigger_value")
    @classmethod
    def coerce_cart_value(cls, value: int | str | None, info: ValidationInfo) -> int | str | None:
        """Cart value triggers carry an integer threshold in minor units."""
        if value is not None and info.data.get("trigger_type") == "cart_value":
            return int(value)
        return value

    @property
    def trigger_cart_value(self) -> int:
        """Minimum cart value for cart_value triggers (0 when unset)."""
        if self.trigger_type != "cart_value" or self.trigger_value is None:
            return 0
        return int(self.trigger_value)

    def inactive_reason(self, now: datetime | None = None) -> str | None:
        """Explain why the rule cannot be used right now, or None if it can."""
        now = now or datetime.now(timezone.utc)
        if self.status != "active":
            return "PWP offer is no longer active"
        if self.starts_at and self.starts_at > now:
            return "PWP offer has not started yet"
        if self.ends_at and self.ends_at < now:
            return "PWP offer has expired"
        return None


class PwpAnnotation(BaseModel):
    """Line priced by a PWP reward rule."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pwp"] = "pwp"
    rule_id: str = Field(description="PWP rule that priced the item")
    original_price: int = Field(ge=0, description="Reward variant price before the offer")
    discount_amount: int = Field(ge=0, description="Per-unit discount granted by the rule")


class VariantDiscountAnnotation(BaseModel):
    """Line priced by an admin variant discount."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["variant_discount"] = "variant_discount"
    original_unit_price: int = Field(ge=0, description="Base price before the discount")
    discount_amount: int = Field(ge=0, description="Per-unit discount")
    discount_type: DiscountType | None = Field(default=None, description="How the discount was expressed")


class BulkTierAnnotation(BaseModel):
    """Line priced by a quantity tier.

    `original_price` is persisted when the item is priced so that refunds and
    reports never depend on the schedule as it looks later.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["bulk_tier"] = "bulk_tier"
    is_bulk_price: bool = True
    min_quantity: int | None = Field(default=None, description="Minimum quantity of the applied tier")
    original_price: int | None = Field(default=None, ge=0, description="Schedule base price at pricing time")


DiscountAnnotation = Annotated[
    Union[PwpAnnotation, VariantDiscountAnnotation, BulkTierAnnotation],
    Field(discriminator="kind"),
]


class TierResolution(BaseModel):
    """Outcome of resolving a quantity against a schedule."""

    model_config = ConfigDict(frozen=True)

    price: int = Field(description="Unit price in minor units")
    tier: PriceTier | None = Field(default=None, description="Matching tier, None for base price")

    @computed_field
    @property
    def is_bulk_price(self) -> bool:
        return self.tier is not None


class ComposedPrice(BaseModel):
    """Effective unit price of a line after item-scoped discounts."""

    model_config = ConfigDict(frozen=True)

    unit_price: int = Field(ge=0, description="Price the customer is charged per unit")
    annotation: DiscountAnnotation | None = Field(default=None, description="Discount that produced the price")
    source: PriceSource = Field(description="Which precedence rule won")
    clamped: bool = Field(default=False, description="True when a discount exceeded the price")
