"""Cart API routes: live pricing and the pre-checkout sync check."""

import logging

from fastapi import APIRouter, status

from pricing_engine.api.middleware.error_handler import APIError
from pricing_engine.core.exceptions import ConfigurationError
from pricing_engine.schemas.cart import PricedCart, SyncCheckResponse
from pricing_engine.schemas.order import Order
from pricing_engine.services.cart_pricing_service import CartPricingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/carts", tags=["carts"])

CART_CHANGED_MESSAGE = "Prices changed, please review your cart"
PRICING_UNAVAILABLE_MESSAGE = "Pricing for an item in your cart is temporarily unavailable"


def _pricing_unavailable(cart: Order, error: ConfigurationError) -> APIError:
    logger.error("Cart %s hit a pricing configuration error: %s", cart.id, error.message)
    return APIError(
        message=PRICING_UNAVAILABLE_MESSAGE,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        error_type=error.error_type,
    )


@router.post(
    "/price",
    response_model=PricedCart,
    summary="Price cart",
    description="Re-price a cart against live catalog data and return its totals.",
)
async def price_cart(cart: Order) -> PricedCart:
    """Re-price every line of a cart and aggregate its totals.

    Raises:
        APIError: 422 if a variant's pricing configuration is malformed.
    """
    service = CartPricingService()

    try:
        return await service.price_cart(cart)
    except ConfigurationError as e:
        raise _pricing_unavailable(cart, e)


@router.post(
    "/sync-check",
    response_model=SyncCheckResponse,
    summary="Check cart prices",
    description="Compare stored cart prices with live configuration before payment.",
)
async def sync_check(cart: Order) -> SyncCheckResponse:
    """Report lines whose stored price no longer matches live pricing.

    The response carries a customer-facing message whenever the cart must
    be reviewed before checkout.

    Raises:
        APIError: 422 if a variant's pricing configuration is malformed.
    """
    service = CartPricingService()

    try:
        report = await service.sync_cart(cart)
    except ConfigurationError as e:
        raise _pricing_unavailable(cart, e)

    return SyncCheckResponse(
        report=report,
        message=CART_CHANGED_MESSAGE if report.needs_sync else None,
    )
