"""Bulk (quantity-break) tier price resolution."""

import logging

from pricing_engine.core.exceptions import InvalidScheduleError
from pricing_engine.schemas.pricing import PriceSchedule, PriceTier, TierResolution

logger = logging.getLogger(__name__)


def validate_schedule(schedule: PriceSchedule) -> None:
    """Reject tier configurations the resolver cannot price unambiguously.

    Ranges only have to be unambiguous. Quantities outside every tier
    resolve to the base price, and tier prices are not checked.

    Args:
        schedule: Schedule to check.

    Raises:
        InvalidScheduleError: If a range is inverted or two tiers overlap,
            including an unbounded tier below another tier.
    """
    variant_id = schedule.variant_id
    ordered = sorted(schedule.tiers, key=lambda t: t.min_quantity)

    for tier in ordered:
        if tier.max_quantity is not None and tier.max_quantity < tier.min_quantity:
            raise InvalidScheduleError(
                f"Tier {tier.min_quantity}-{tier.max_quantity} has max_quantity below min_quantity",
                variant_id=variant_id,
            )

    for lower, upper in zip(ordered, ordered[1:]):
        if lower.max_quantity is None:
            raise InvalidScheduleError(
                f"Unbounded tier starting at {lower.min_quantity} overlaps tier starting at {upper.min_quantity}",
                variant_id=variant_id,
            )
        if lower.max_quantity >= upper.min_quantity:
            raise InvalidScheduleError(
                f"Tier {lower.min_quantity}-{lower.max_quantity} overlaps tier starting at {upper.min_quantity}",
                variant_id=variant_id,
            )


def find_tier(tiers: tuple[PriceTier, ...], quantity: int) -> PriceTier | None:
    """Return the highest tier whose range contains `quantity`."""
    for tier in sorted(tiers, key=lambda t: t.min_quantity, reverse=True):
        if tier.matches(quantity):
            return tier
    return None


def resolve(schedule: PriceSchedule, quantity: int) -> TierResolution:
    """Resolve the unit price for a quantity.

    Args:
        schedule: Variant price schedule.
        quantity: Requested quantity.

    Returns:
        TierResolution: The tier price and tier, or the base price with no tier.

    Raises:
        InvalidScheduleError: If the schedule is malformed.
    """
    validate_schedule(schedule)

    tier = find_tier(schedule.tiers, quantity)
    if tier is None:
        return TierResolution(price=schedule.base_price)

    logger.debug(
        "Variant %s qty %d resolved to tier %d+ at %d",
        schedule.variant_id,
        quantity,
        tier.min_quantity,
        tier.unit_price,
    )
    return TierResolution(price=tier.unit_price, tier=tier)
