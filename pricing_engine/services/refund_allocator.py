"""Proportional, rounding-safe refund allocation for returned items.

Works only from the frozen order record. The refundable pool (the order's
net, or its merchandise-only net when shipping is not refunded) is spread
over lines in proportion to each line's gross at original prices. Line
totals are rounded half-up and then reconciled so they add up to the pool
exactly. Within a line, each unit refunds the floor of the per-unit share
and the leftover minor units ride on the line's last unit.
"""

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from fractions import Fraction
from typing import Any

from pricing_engine.core.exceptions import ReturnQuantityError, RoundingInvariantViolation
from pricing_engine.core.money import Money
from pricing_engine.schemas.order import Order, OrderTotals
from pricing_engine.schemas.refund import (
    DiscountInfo,
    RefundAllocation,
    RefundLine,
    ReturnItemRequest,
)
from pricing_engine.services.order_aggregator import aggregate
from pricing_engine.services.reconstruction import reconstruct_line_prices

logger = logging.getLogger(__name__)

_HALF = Fraction(1, 2)


def refundable_pool(totals: OrderTotals, include_shipping: bool = True) -> Money:
    """Amount to spread across lines for a full return."""
    return totals.net if include_shipping else totals.item_net


def shipping_refund(totals: OrderTotals, include_shipping: bool = True) -> Money:
    """Part of the refundable pool that is shipping rather than merchandise."""
    return refundable_pool(totals, include_shipping) - totals.item_net


def _apportion(pool: Money, weights: list[tuple[str, int]]) -> dict[str, Money]:
    """Split `pool` by weight, round half-up, then reconcile to the exact pool."""
    total_weight = sum(weight for _, weight in weights)
    exact = {item_id: Fraction(pool * weight, total_weight) for item_id, weight in weights}
    rounded = {item_id: int(share + _HALF) for item_id, share in exact.items()}

    drift = pool - sum(rounded.values())
    if drift:
        # Positive drift goes to lines that rounded down the most, negative
        # drift comes off lines that rounded up the most. Ties keep line order.
        order = {item_id: index for index, (item_id, _) in enumerate(weights)}
        candidates = sorted(
            rounded,
            key=lambda item_id: (
                -(exact[item_id] - rounded[item_id]) if drift > 0 else exact[item_id] - rounded[item_id],
                order[item_id],
            ),
        )
        step = 1 if drift > 0 else -1
        for item_id in candidates[: abs(drift)]:
            rounded[item_id] += step

    return rounded


def line_paid_totals(
    order: Order,
    totals: OrderTotals | None = None,
    include_shipping: bool = True,
    base_prices: Mapping[str, Money] | None = None,
) -> dict[str, Money]:
    """What the customer actually paid for each line, keyed by item id.

    Args:
        order: Finalized order.
        totals: Precomputed aggregate for the order, if available.
        include_shipping: Spread effective shipping across lines.
        base_prices: Base prices for legacy bulk lines, by variant id.

    Returns:
        dict: Line totals summing exactly to the refundable pool.

    Raises:
        RoundingInvariantViolation: If the totals fail to sum to the pool.
    """
    if not order.items:
        return {}

    totals = totals or aggregate(order, base_prices)
    pool = refundable_pool(totals, include_shipping)
    originals = reconstruct_line_prices(order.items, base_prices)

    weights = [(item.id, originals[item.id] * item.quantity) for item in order.items]
    if sum(weight for _, weight in weights) == 0:
        weights = [(item.id, item.quantity) for item in order.items]

    paid = _apportion(pool, weights)

    allocated = sum(paid.values())
    if allocated != pool:
        logger.error("Refund apportionment for order %s drifted: %d != %d", order.id, allocated, pool)
        raise RoundingInvariantViolation(expected=pool, actual=allocated)

    return paid


def _split(total: Money, quantity: int) -> tuple[Money, Money]:
    per_unit = total // quantity
    return per_unit, total - per_unit * quantity


def _normalize_requests(items_to_return: Iterable[ReturnItemRequest | Mapping[str, Any]]) -> Counter:
    requested: Counter = Counter()
    for entry in items_to_return:
        request = entry if isinstance(entry, ReturnItemRequest) else ReturnItemRequest.model_validate(entry)
        requested[request.item_id] += request.quantity
    return requested


def allocate_refund(
    order: Order,
    items_to_return: Iterable[ReturnItemRequest | Mapping[str, Any]],
    already_returned: Mapping[str, int] | None = None,
    include_shipping: bool = True,
    base_prices: Mapping[str, Money] | None = None,
) -> list[RefundAllocation]:
    """Compute refund amounts for returning units of an order.

    Args:
        order: Finalized order.
        items_to_return: Lines and quantities being returned now. Repeated
            item ids are merged.
        already_returned: Units of each line returned by earlier requests.
        include_shipping: Spread effective shipping across lines.
        base_prices: Base prices for legacy bulk lines, by variant id.

    Returns:
        list[RefundAllocation]: One allocation per requested line.

    Raises:
        ReturnQuantityError: For unknown lines or more units than returnable.
    """
    already_returned = already_returned or {}
    requested = _normalize_requests(items_to_return)

    for item_id, quantity in requested.items():
        item = order.get_item(item_id)
        if item is None:
            raise ReturnQuantityError(f"Item {item_id} is not part of order {order.id}")
        returned = already_returned.get(item_id, 0)
        if returned + quantity > item.quantity:
            raise ReturnQuantityError(
                f"Cannot return {quantity} of item {item_id}: "
                f"{item.quantity - returned} of {item.quantity} units remain returnable",
                details={"item_id": item_id, "requested": quantity, "returnable": item.quantity - returned},
            )

    paid = line_paid_totals(order, include_shipping=include_shipping, base_prices=base_prices)

    allocations = []
    for item_id, quantity in requested.items():
        item = order.get_item(item_id)
        returned = already_returned.get(item_id, 0)
        per_unit, remainder = _split(paid[item_id], item.quantity)
        includes_last = returned + quantity == item.quantity
        amount = per_unit * quantity + (remainder if includes_last else 0)

        allocations.append(
            RefundAllocation(
                item_id=item.id,
                variant_id=item.variant_id,
                quantity=quantity,
                original_quantity=item.quantity,
                returned_quantity=returned,
                item_actual_paid_total=paid[item_id],
                refund_per_unit=per_unit,
                refund_remainder=remainder,
                includes_last_unit=includes_last,
                refund_amount=amount,
            )
        )

    logger.info(
        "Allocated refund of %d across %d lines for order %s",
        sum(a.refund_amount for a in allocations),
        len(allocations),
        order.id,
    )
    return allocations


def build_refund_lines(
    order: Order,
    already_returned: Mapping[str, int] | None = None,
    include_shipping: bool = True,
    base_prices: Mapping[str, Money] | None = None,
) -> tuple[list[RefundLine], DiscountInfo]:
    """Refund figures for every line that still has returnable units.

    Args:
        order: Finalized order.
        already_returned: Units of each line returned by earlier requests.
        include_shipping: Spread effective shipping across lines.
        base_prices: Base prices for legacy bulk lines, by variant id.

    Returns:
        tuple: Returnable lines and the order's discount summary.
    """
    already_returned = already_returned or {}
    totals = aggregate(order, base_prices)
    paid = line_paid_totals(order, totals, include_shipping, base_prices)

    lines = []
    for item in order.items:
        returned = min(already_returned.get(item.id, 0), item.quantity)
        returnable = item.quantity - returned
        if returnable <= 0:
            continue
        per_unit, remainder = _split(paid[item.id], item.quantity)
        lines.append(
            RefundLine(
                item_id=item.id,
                variant_id=item.variant_id,
                title=item.title,
                unit_price=item.unit_price,
                original_quantity=item.quantity,
                returned_quantity=returned,
                returnable_quantity=returnable,
                refund_per_unit=per_unit,
                refund_remainder=remainder,
                refund_total=per_unit * returnable + remainder,
                item_actual_paid_total=paid[item.id],
            )
        )

    discounts = order.order_discounts
    info = DiscountInfo(
        original_order_total=totals.gross,
        coupon_code=discounts.coupon.code if discounts.coupon else None,
        points_redeemed=discounts.points.redeemed if discounts.points else 0,
        tier_slug=discounts.membership_tier.slug if discounts.membership_tier else None,
        breakdown=totals.breakdown,
        total_discounts=totals.total_discounts,
        shipping=totals.shipping,
        actual_paid_for_items=totals.item_net,
        refundable_pool=refundable_pool(totals, include_shipping),
        shipping_refund=shipping_refund(totals, include_shipping),
    )
    return lines, info
