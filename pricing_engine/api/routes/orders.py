"""Order API routes: totals, refund plans and refund quotes."""

from fastapi import APIRouter, HTTPException, status

from pricing_engine.api.middleware.error_handler import NotFoundError
from pricing_engine.core.money import format_money
from pricing_engine.schemas.cart import OrderTotalsResponse
from pricing_engine.schemas.refund import RefundPlan, RefundQuote, RefundQuoteRequest
from pricing_engine.services.return_service import ReturnService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get(
    "/{order_id}/totals",
    response_model=OrderTotalsResponse,
    summary="Get order totals",
    description="Reconstruct gross, discounts, shipping and net for a finalized order.",
)
async def get_order_totals(order_id: str) -> OrderTotalsResponse:
    """Aggregate a stored order's money figures.

    Legacy bulk lines are priced from the catalog the same way the refund
    plan prices them.

    Raises:
        NotFoundError: 404 if the order does not exist.
        MissingAnnotationError: Mapped to 422 when a line cannot be reconstructed.
    """
    service = ReturnService()
    result = await service.get_order_totals(order_id)
    if result is None:
        raise NotFoundError(f"Order {order_id} not found")

    order, totals = result
    display = {
        name: format_money(getattr(totals, name), order.currency)
        for name in ("gross", "item_discounts", "order_discounts", "shipping", "net")
    }
    return OrderTotalsResponse(order_id=order.id, currency=order.currency, totals=totals, display=display)


@router.get(
    "/{order_id}/refund-plan",
    response_model=RefundPlan,
    summary="Get refund plan",
    description="Returnable lines with refund amounts and the order's discount summary.",
)
async def get_refund_plan(order_id: str) -> RefundPlan:
    """Build the returns screen for an order.

    Raises:
        NotFoundError: 404 if the order does not exist.
    """
    service = ReturnService()
    plan = await service.get_refund_plan(order_id)
    if plan is None:
        raise NotFoundError(f"Order {order_id} not found")
    return plan


@router.post(
    "/{order_id}/refund-quote",
    response_model=RefundQuote,
    summary="Quote refund",
    description="Refund owed for returning specific units of an order.",
)
async def quote_refund(order_id: str, data: RefundQuoteRequest) -> RefundQuote:
    """Quote a refund for the requested units.

    Raises:
        NotFoundError: 404 if the order does not exist.
        HTTPException: 400 if the order is no longer returnable.
        ReturnQuantityError: Mapped to 400 for unknown lines or excess units.
    """
    service = ReturnService()

    try:
        quote = await service.quote_refund(order_id, data.items)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    if quote is None:
        raise NotFoundError(f"Order {order_id} not found")
    return quote
