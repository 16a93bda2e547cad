"""Recover pre-discount prices from stored line annotations."""

from collections.abc import Mapping

from pricing_engine.core.exceptions import MissingAnnotationError
from pricing_engine.core.money import Money
from pricing_engine.schemas.order import LineItem


def reconstruct_original_price(item: LineItem, base_price: Money | None = None) -> Money:
    """Return the unit price the item would have had without item discounts.

    Args:
        item: Stored line item.
        base_price: Schedule base price, only consulted for bulk lines that
            predate persisting `original_price` on the annotation.

    Returns:
        Money: Original unit price.

    Raises:
        MissingAnnotationError: If a bulk line has no stored original price
            and no base price was supplied.
    """
    annotation = item.annotation
    if annotation is None:
        return item.unit_price

    if annotation.kind == "pwp":
        return annotation.original_price

    if annotation.kind == "variant_discount":
        return annotation.original_unit_price

    if annotation.original_price is not None:
        return annotation.original_price
    if base_price is not None:
        return base_price

    raise MissingAnnotationError(
        f"Bulk priced item {item.id} has no stored original price",
        item_id=item.id,
    )


def reconstruct_line_prices(
    items: tuple[LineItem, ...],
    base_prices: Mapping[str, Money] | None = None,
) -> dict[str, Money]:
    """Reconstruct original unit prices for every line, keyed by item id.

    Args:
        items: Lines to reconstruct.
        base_prices: Optional schedule base prices keyed by variant id.
    """
    base_prices = base_prices or {}
    return {
        item.id: reconstruct_original_price(
            item,
            base_prices.get(item.variant_id) if item.variant_id else None,
        )
        for item in items
    }
