"""Pricing API routes: tier resolution and line price composition."""

from fastapi import APIRouter, HTTPException, status

from pricing_engine.core.config import get_settings
from pricing_engine.schemas.cart import ComposeRequest, LinePriceRequest, TierResolveRequest
from pricing_engine.schemas.pricing import ComposedPrice, TierResolution
from pricing_engine.services.cart_pricing_service import CartPricingService
from pricing_engine.services.catalog_service import CatalogService
from pricing_engine.services.item_composer import compose
from pricing_engine.services.tier_resolver import resolve

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post(
    "/tiers/resolve",
    response_model=TierResolution,
    summary="Resolve tier price",
    description="Resolve a quantity against a price schedule. Rejects overlapping tiers with 422.",
)
async def resolve_tier(data: TierResolveRequest) -> TierResolution:
    """Resolve the unit price for a quantity.

    Raises:
        InvalidScheduleError: Mapped to 422 configuration_error.
    """
    return resolve(data.schedule, data.quantity)


@router.post(
    "/items/compose",
    response_model=ComposedPrice,
    summary="Compose line price",
    description="Apply item discount precedence (PWP, bulk tier, variant discount, base) to explicit inputs.",
)
async def compose_item(data: ComposeRequest) -> ComposedPrice:
    """Compose a unit price from the supplied pricing inputs."""
    return compose(
        data.base_price,
        data.quantity,
        schedule=data.schedule,
        pwp_rule=data.pwp_rule,
        variant_discount=data.variant_discount,
        strict=get_settings().strict_negative_prices,
    )


@router.post(
    "/lines",
    response_model=ComposedPrice,
    summary="Price catalog line",
    description="Price a catalog variant at a quantity using live tiers, variant discounts and PWP rules.",
)
async def price_line(data: LinePriceRequest) -> ComposedPrice:
    """Price a variant as it would be added to a cart.

    Raises:
        HTTPException: 400 if the variant has no price or the PWP offer is unusable.
    """
    service = CartPricingService()

    try:
        return await service.price_line(
            variant_id=data.variant_id,
            quantity=data.quantity,
            currency=data.currency,
            pwp_rule_id=data.pwp_rule_id,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.post(
    "/variants/{variant_id}/invalidate",
    summary="Invalidate cached schedule",
    description="Drop cached price schedules for a variant after its prices are edited.",
)
async def invalidate_variant(variant_id: str) -> dict:
    """Invalidate every cached currency of a variant's schedule."""
    service = CatalogService()
    removed = service.invalidate_variant(variant_id)
    return {"variant_id": variant_id, "invalidated": removed}
