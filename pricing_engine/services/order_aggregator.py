"""Order-level discount aggregation.

The single place where an order's gross, discounts, shipping and net are
computed. Live cart totals, refund allocation and revenue reporting all call
`aggregate` so the three can never drift apart.
"""

import logging
from collections.abc import Mapping

from pricing_engine.core.money import Money
from pricing_engine.schemas.order import DiscountBreakdown, Order, OrderDiscounts, OrderTotals
from pricing_engine.services.reconstruction import reconstruct_line_prices

logger = logging.getLogger(__name__)


def coupon_amount(order: Order) -> Money:
    """Coupon discount for an order.

    Per-item adjustment records and the order-level cached amount are two
    recordings of the same coupon; adjustments win when both exist.
    """
    from_adjustments = sum(item.coupon_adjustment_total for item in order.items)
    if from_adjustments > 0:
        return from_adjustments
    coupon = order.order_discounts.coupon
    return coupon.amount if coupon else 0


def _order_scoped(discounts: OrderDiscounts) -> tuple[Money, Money, Money]:
    points = discounts.points.amount if discounts.points else 0
    promo = discounts.membership_promo.amount if discounts.membership_promo else 0
    tier = discounts.membership_tier.amount if discounts.membership_tier else 0
    return points, promo, tier


def aggregate(order: Order, base_prices: Mapping[str, Money] | None = None) -> OrderTotals:
    """Compute gross, discounts, shipping and net for an order.

    Pure and idempotent: the same order always yields the same totals.

    Args:
        order: Cart or finalized order.
        base_prices: Optional schedule base prices by variant id, only used
            for bulk lines stored without an original price.

    Returns:
        OrderTotals: Aggregated figures in minor units.

    Raises:
        MissingAnnotationError: If a line's original price cannot be recovered.
    """
    originals = reconstruct_line_prices(order.items, base_prices)

    gross = 0
    by_kind = {"pwp": 0, "variant_discount": 0, "bulk_tier": 0}
    for item in order.items:
        original = originals[item.id]
        gross += original * item.quantity

        if item.annotation is None:
            continue
        line_discount = (original - item.unit_price) * item.quantity
        if line_discount < 0:
            logger.warning(
                "Item %s is charged %d above its original price %d; ignoring negative discount",
                item.id,
                item.unit_price,
                original,
            )
            line_discount = 0
        by_kind[item.annotation.kind] += line_discount

    item_discounts = sum(by_kind.values())

    coupon = coupon_amount(order)
    points, promo, tier = _order_scoped(order.order_discounts)
    order_discounts = coupon + points + promo + tier

    shipping = order.shipping.effective_amount
    net = max(0, gross + shipping - item_discounts - order_discounts)
    item_net = max(0, gross - item_discounts - order_discounts)

    return OrderTotals(
        gross=gross,
        item_discounts=item_discounts,
        order_discounts=order_discounts,
        shipping=shipping,
        net=net,
        item_net=item_net,
        breakdown=DiscountBreakdown(
            pwp=by_kind["pwp"],
            variant=by_kind["variant_discount"],
            bulk=by_kind["bulk_tier"],
            coupon=coupon,
            points=points,
            membership_promo=promo,
            membership_tier=tier,
        ),
    )
