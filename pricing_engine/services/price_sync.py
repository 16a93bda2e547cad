"""Detect drift between stored cart prices and live pricing configuration.

Fail-closed: the checker only reports what must change. Re-pricing the cart
is left to the caller, so a customer is never silently charged a stale or a
surprise amount.
"""

import logging
from collections.abc import Mapping
from datetime import datetime

from pricing_engine.core.money import format_money
from pricing_engine.schemas.order import LineItem, Order
from pricing_engine.schemas.pricing import ComposedPrice, PriceSchedule, PwpRule, VariantDiscount
from pricing_engine.schemas.sync import PriceDiff, SyncReport
from pricing_engine.services.item_composer import compose

logger = logging.getLogger(__name__)


def cart_value_excluding_pwp(cart: Order) -> int:
    """Value of the cart at charged prices, ignoring PWP reward lines."""
    return sum(item.unit_price * item.quantity for item in cart.items if not item.is_pwp)


def _annotation_kind(composed: ComposedPrice) -> str | None:
    return composed.annotation.kind if composed.annotation else None


def _price_diff(item: LineItem, composed: ComposedPrice, currency: str) -> PriceDiff | None:
    stored_kind = item.annotation.kind if item.annotation else None
    price_changed = composed.unit_price != item.unit_price
    kind_changed = _annotation_kind(composed) != stored_kind

    if not price_changed and not kind_changed:
        return None

    old = format_money(item.unit_price, currency)
    new = format_money(composed.unit_price, currency)
    if price_changed:
        change_type = "price_decreased" if composed.unit_price < item.unit_price else "price_increased"
        if composed.source == "bulk_tier":
            message = f"Bulk price applied (min qty: {composed.annotation.min_quantity}): {old} -> {new}"
        elif composed.source == "variant_discount":
            message = f"Variant discount applied: {old} -> {new}"
        else:
            message = f"Price updated: {old} -> {new}"
    else:
        change_type = "metadata_updated"
        message = {
            "bulk_tier": "Bulk price metadata applied",
            "variant_discount": "Variant discount metadata applied",
        }.get(composed.source, "Metadata updated")

    return PriceDiff(
        item_id=item.id,
        variant_id=item.variant_id,
        change_type=change_type,
        old_price=item.unit_price,
        new_price=composed.unit_price,
        new_annotation=composed.annotation,
        recommended_action="update_price",
        message=message,
    )


def _pwp_removal_reason(
    item: LineItem,
    cart: Order,
    rules: Mapping[str, PwpRule],
    variant_products: Mapping[str, str] | None,
    now: datetime | None,
) -> str | None:
    rule = rules.get(item.annotation.rule_id)
    if rule is None:
        return "PWP offer is no longer active"

    reason = rule.inactive_reason(now)
    if reason:
        return reason

    if rule.trigger_type == "cart_value":
        cart_value = cart_value_excluding_pwp(cart)
        minimum = rule.trigger_cart_value
        if cart_value < minimum:
            return (
                f"Cart value ({format_money(cart_value, cart.currency)}) is below "
                f"minimum ({format_money(minimum, cart.currency)})"
            )
        return None

    if variant_products is None:
        return None
    present = {
        variant_products.get(line.variant_id)
        for line in cart.items
        if not line.is_pwp and line.variant_id
    }
    if rule.trigger_value not in present:
        return "Required product is no longer in cart"
    return None


def check_sync(
    cart: Order,
    live_schedules: Mapping[str, PriceSchedule],
    variant_discounts: Mapping[str, VariantDiscount] | None = None,
    pwp_rules: Mapping[str, PwpRule] | None = None,
    variant_products: Mapping[str, str] | None = None,
    now: datetime | None = None,
) -> SyncReport:
    """Compare a cart's stored prices with what live configuration produces.

    Args:
        cart: Cart with stored unit prices and annotations.
        live_schedules: Current price schedules by variant id.
        variant_discounts: Current admin variant discounts by variant id.
        pwp_rules: Current PWP rules by id. PWP lines are only checked when given.
        variant_products: Product id of each variant, for product triggers.
        now: Clock override for rule windows.

    Returns:
        SyncReport: Diffs the caller must act on before checkout.

    Raises:
        ConfigurationError: If a live schedule is malformed.
    """
    variant_discounts = variant_discounts or {}
    diffs: list[PriceDiff] = []
    skipped: list[str] = []

    for item in cart.items:
        if item.is_pwp:
            if pwp_rules is None:
                continue
            reason = _pwp_removal_reason(item, cart, pwp_rules, variant_products, now)
            if reason:
                diffs.append(
                    PriceDiff(
                        item_id=item.id,
                        variant_id=item.variant_id,
                        change_type="pwp_removed",
                        old_price=item.unit_price,
                        recommended_action="remove_item",
                        message=reason,
                    )
                )
            continue

        schedule = live_schedules.get(item.variant_id) if item.variant_id else None
        if schedule is None:
            logger.warning("No live price schedule for item %s (variant %s); skipping", item.id, item.variant_id)
            skipped.append(item.id)
            continue

        composed = compose(
            schedule.base_price,
            item.quantity,
            schedule,
            variant_discount=variant_discounts.get(item.variant_id),
        )
        diff = _price_diff(item, composed, cart.currency)
        if diff:
            diffs.append(diff)

    if diffs:
        logger.info("Cart %s needs sync: %d lines drifted", cart.id, len(diffs))

    return SyncReport(needs_sync=bool(diffs), diffs=diffs, skipped_items=skipped)
