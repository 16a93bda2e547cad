"""Database row type definitions."""

from pricing_engine.models.catalog import ProductVariantRow, PwpRuleRow, VariantPriceRow
from pricing_engine.models.order import LineItemRow, OrderRow, ReturnRequestRow

__all__ = [
    "VariantPriceRow",
    "ProductVariantRow",
    "PwpRuleRow",
    "OrderRow",
    "LineItemRow",
    "ReturnRequestRow",
]
