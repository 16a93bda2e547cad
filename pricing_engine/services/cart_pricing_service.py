"""Cart pricing: compose live unit prices and aggregate totals.

The checkout layer calls this on every quantity or discount change, and
runs `sync_cart` once more right before payment.
"""

import logging
from datetime import datetime

from pricing_engine.core.config import Settings, get_settings
from pricing_engine.schemas.cart import PricedCart
from pricing_engine.schemas.order import LineItem, Order
from pricing_engine.schemas.pricing import ComposedPrice
from pricing_engine.schemas.sync import SyncReport
from pricing_engine.services.catalog_service import CatalogService
from pricing_engine.services.item_composer import apply_pwp_reward, compose
from pricing_engine.services.order_aggregator import aggregate
from pricing_engine.services.price_sync import check_sync
from pricing_engine.services.promo_service import PromoService

logger = logging.getLogger(__name__)


def _priced_line(item: LineItem, composed: ComposedPrice) -> LineItem:
    return item.model_copy(update={"unit_price": composed.unit_price, "annotation": composed.annotation})


class CartPricingService:
    """Service that prices carts against the live catalog."""

    def __init__(
        self,
        catalog: CatalogService | None = None,
        promo: PromoService | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize cart pricing service.

        Args:
            catalog: Optional catalog service for testing.
            promo: Optional promo service for testing.
            settings: Optional settings override.
        """
        self.catalog = catalog or CatalogService()
        self.promo = promo or PromoService()
        self.settings = settings or get_settings()

    async def price_line(
        self,
        variant_id: str,
        quantity: int,
        currency: str | None = None,
        pwp_rule_id: str | None = None,
    ) -> ComposedPrice:
        """Price a variant at a quantity, as when adding it to a cart.

        Args:
            variant_id: Catalog variant.
            quantity: Line quantity.
            currency: Currency code, defaults to the store currency.
            pwp_rule_id: PWP rule when the line is a reward.

        Returns:
            ComposedPrice: Unit price and the annotation to store with the line.

        Raises:
            ValueError: If the variant has no price or the PWP rule is unusable.
            ConfigurationError: If the variant's tiers are malformed.
        """
        currency = (currency or self.settings.default_currency).lower()
        schedule = await self.catalog.get_price_schedule(variant_id, currency)
        if schedule is None:
            raise ValueError(f"Variant {variant_id} has no {currency.upper()} price")

        strict = self.settings.strict_negative_prices

        if pwp_rule_id:
            rule = await self.promo.get_pwp_rule(pwp_rule_id)
            if rule is None:
                raise ValueError("PWP offer is no longer active")
            reason = rule.inactive_reason()
            if reason:
                raise ValueError(reason)
            if rule.reward_variant_id and rule.reward_variant_id != variant_id:
                raise ValueError(f"PWP offer {rule.id} does not reward variant {variant_id}")
            return apply_pwp_reward(rule, schedule.base_price, strict=strict)

        variant_discount = await self.catalog.get_variant_discount(variant_id)
        return compose(schedule.base_price, quantity, schedule, variant_discount=variant_discount, strict=strict)

    async def price_cart(self, cart: Order) -> PricedCart:
        """Re-price every non-PWP line of a cart and aggregate its totals.

        PWP lines keep the price their rule set; `sync_cart` decides whether
        they are still eligible.

        Args:
            cart: Cart with quantities, adjustments and order-level discounts.

        Returns:
            PricedCart: The re-priced cart and its totals.

        Raises:
            ConfigurationError: If a variant's tiers are malformed.
        """
        currency = cart.currency or self.settings.default_currency
        variant_ids = [item.variant_id for item in cart.items if item.variant_id and not item.is_pwp]
        schedules = await self.catalog.get_price_schedules(variant_ids, currency)
        discounts = await self.catalog.get_variant_discounts(variant_ids)
        strict = self.settings.strict_negative_prices

        items: list[LineItem] = []
        repriced: list[str] = []
        skipped: list[str] = []

        for item in cart.items:
            if item.is_pwp:
                items.append(item)
                continue

            schedule = schedules.get(item.variant_id) if item.variant_id else None
            if schedule is None:
                logger.warning("No live price for cart %s item %s; keeping stored price", cart.id, item.id)
                skipped.append(item.id)
                items.append(item)
                continue

            composed = compose(
                schedule.base_price,
                item.quantity,
                schedule,
                variant_discount=discounts.get(item.variant_id),
                strict=strict,
            )
            priced = _priced_line(item, composed)
            if priced != item:
                repriced.append(item.id)
            items.append(priced)

        priced_cart = cart.model_copy(update={"items": tuple(items)})
        totals = aggregate(priced_cart)

        logger.info(
            "Priced cart %s: %d lines, net %d (%d repriced)",
            cart.id,
            len(items),
            totals.net,
            len(repriced),
        )
        return PricedCart(cart=priced_cart, totals=totals, repriced_items=repriced, skipped_items=skipped)

    async def sync_cart(self, cart: Order, now: datetime | None = None) -> SyncReport:
        """Check a cart's stored prices against live configuration before payment.

        Args:
            cart: Cart with stored unit prices and annotations.
            now: Clock override for PWP rule windows.

        Returns:
            SyncReport: Lines the customer must review.

        Raises:
            ConfigurationError: If a live schedule is malformed.
        """
        currency = cart.currency or self.settings.default_currency
        variant_ids = [item.variant_id for item in cart.items if item.variant_id and not item.is_pwp]
        schedules = await self.catalog.get_price_schedules(variant_ids, currency)
        discounts = await self.catalog.get_variant_discounts(variant_ids)

        rule_ids = [item.annotation.rule_id for item in cart.items if item.is_pwp]
        rules = await self.promo.get_pwp_rules(rule_ids)

        variant_products = None
        if any(rule.trigger_type == "product" for rule in rules.values()):
            variant_products = await self.catalog.get_variant_products(variant_ids)

        return check_sync(
            cart,
            schedules,
            variant_discounts=discounts,
            pwp_rules=rules,
            variant_products=variant_products,
            now=now,
        )
