"""Domain exceptions raised by the pricing engine.

Routes translate these into HTTP errors; services never let them reach a
customer verbatim.
"""

from typing import Any


class PricingError(Exception):
    """Base exception for all pricing engine errors."""

    error_type = "pricing_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(PricingError):
    """Pricing configuration supplied by the catalog is malformed."""

    error_type = "configuration_error"


class InvalidScheduleError(ConfigurationError):
    """Tier schedule has overlapping or otherwise illegal ranges."""

    def __init__(self, message: str, variant_id: str | None = None) -> None:
        super().__init__(message, details={"variant_id": variant_id} if variant_id else None)
        self.variant_id = variant_id


class NegativeResultError(PricingError):
    """A discount drove a price or total below zero.

    Normally recovered by clamping to zero; only raised in strict mode.
    """

    error_type = "negative_result"

    def __init__(self, message: str, computed: int) -> None:
        super().__init__(message, details={"computed": computed})
        self.computed = computed


NegativePriceError = NegativeResultError


class MissingAnnotationError(PricingError):
    """A stored line item lacks the data needed to reconstruct its original price."""

    error_type = "missing_annotation"

    def __init__(self, message: str, item_id: str) -> None:
        super().__init__(message, details={"item_id": item_id})
        self.item_id = item_id


class RoundingInvariantViolation(PricingError):
    """Per-line refund totals do not add up to the refundable pool."""

    error_type = "rounding_invariant_violation"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Refund lines sum to {actual} but the refundable total is {expected}",
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class ReturnQuantityError(PricingError):
    """A return request names an unknown line or more units than are returnable."""

    error_type = "return_quantity_error"
