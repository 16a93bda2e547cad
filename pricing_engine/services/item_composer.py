"""Item-scoped discount composition.

Exactly one item-level mechanism may set a line's unit price. Precedence:

1. PWP reward override
2. Bulk tier price
3. Admin variant discount (on the base price)
4. Base price
"""

import logging
from decimal import Decimal

from pricing_engine.core.exceptions import NegativeResultError
from pricing_engine.core.money import Money, percent_of, round_half_up
from pricing_engine.schemas.pricing import (
    BulkTierAnnotation,
    ComposedPrice,
    PriceSchedule,
    PwpAnnotation,
    PwpRule,
    VariantDiscount,
    VariantDiscountAnnotation,
)
from pricing_engine.services.tier_resolver import resolve

logger = logging.getLogger(__name__)

_HUNDRED = Decimal(100)


def _clamp(price: Money, context: str, strict: bool) -> tuple[Money, bool]:
    """Clamp a negative price to zero, or raise when strict."""
    if price >= 0:
        return price, False
    error = NegativeResultError(f"{context} computed a negative price ({price})", computed=price)
    if strict:
        raise error
    logger.warning("%s; clamping to 0", error.message)
    return 0, True


def apply_pwp_reward(rule: PwpRule, original_price: Money, strict: bool = False) -> ComposedPrice:
    """Price a PWP reward line entirely from its rule.

    Args:
        rule: The PWP offer.
        original_price: Reward variant price before the offer.
        strict: Raise NegativeResultError instead of clamping.

    Returns:
        ComposedPrice: Reward price with a pwp annotation.
    """
    if rule.discount_type == "percentage":
        discount = percent_of(original_price, rule.discount_value)
    else:
        discount = round_half_up(rule.discount_value)

    price, clamped = _clamp(original_price - discount, f"PWP rule {rule.id}", strict)
    return ComposedPrice(
        unit_price=price,
        annotation=PwpAnnotation(
            rule_id=rule.id,
            original_price=original_price,
            discount_amount=original_price - price,
        ),
        source="pwp",
        clamped=clamped,
    )


def apply_variant_discount(
    base_price: Money,
    discount: VariantDiscount,
    strict: bool = False,
) -> ComposedPrice:
    """Apply an admin variant discount to the base price.

    Percentages are capped at 100. The discount is only recorded when it
    actually lowers the price.
    """
    if discount.discount_type == "percentage":
        percent = min(discount.value, _HUNDRED)
        discounted = round_half_up(Decimal(base_price) * (_HUNDRED - percent) / _HUNDRED)
    else:
        discounted = base_price - round_half_up(discount.value)

    discounted, clamped = _clamp(discounted, "Variant discount", strict)
    if discounted >= base_price:
        return ComposedPrice(unit_price=base_price, source="base")

    return ComposedPrice(
        unit_price=discounted,
        annotation=VariantDiscountAnnotation(
            original_unit_price=base_price,
            discount_amount=base_price - discounted,
            discount_type=discount.discount_type,
        ),
        source="variant_discount",
        clamped=clamped,
    )


def compose(
    base_price: Money,
    quantity: int,
    schedule: PriceSchedule | None = None,
    pwp_rule: PwpRule | None = None,
    variant_discount: VariantDiscount | None = None,
    strict: bool = False,
) -> ComposedPrice:
    """Compute a line's effective unit price after item-scoped discounts.

    Args:
        base_price: The variant's standalone unit price.
        quantity: Units on the line.
        schedule: Bulk tier schedule, if the variant has one.
        pwp_rule: Set when the line is a PWP reward addition.
        variant_discount: Admin discount configured on the variant.
        strict: Raise NegativeResultError instead of clamping.

    Returns:
        ComposedPrice: Unit price plus the single annotation that explains it.

    Raises:
        InvalidScheduleError: If the schedule is malformed.
    """
    if pwp_rule is not None:
        return apply_pwp_reward(pwp_rule, base_price, strict=strict)

    if schedule is not None:
        resolution = resolve(schedule, quantity)
        if resolution.tier is not None:
            return ComposedPrice(
                unit_price=resolution.price,
                annotation=BulkTierAnnotation(
                    min_quantity=resolution.tier.min_quantity,
                    original_price=base_price,
                ),
                source="bulk_tier",
            )

    if variant_discount is not None:
        return apply_variant_discount(base_price, variant_discount, strict=strict)

    return ComposedPrice(unit_price=base_price, source="base")
