"""Catalog lookups: price schedules, variant discounts and variant products."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from pricing_engine.core.supabase import get_supabase_client
from pricing_engine.models.catalog import ProductVariantRow, VariantPriceRow
from pricing_engine.schemas.pricing import PriceSchedule, VariantDiscount
from pricing_engine.services.schedule_cache import ScheduleCache, get_schedule_cache

logger = logging.getLogger(__name__)


def variant_discount_from_metadata(metadata: dict[str, Any] | None) -> VariantDiscount | None:
    """Read the admin discount stored on a variant's metadata.

    Args:
        metadata: Variant metadata with `discount` and `discount_type`.

    Returns:
        VariantDiscount | None: None when no positive discount is configured.
    """
    if not metadata:
        return None
    raw = metadata.get("discount")
    if raw in (None, ""):
        return None
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        logger.warning("Ignoring unparseable variant discount %r", raw)
        return None
    if not value.is_finite():
        logger.warning("Ignoring non-finite variant discount %r", raw)
        return None
    if value <= 0:
        return None
    discount_type = "fixed" if metadata.get("discount_type") == "fixed" else "percentage"
    return VariantDiscount(discount_type=discount_type, value=value)


class CatalogService:
    """Service for reading pricing configuration from the catalog store."""

    def __init__(self, cache: ScheduleCache | None = None) -> None:
        """Initialize catalog service.

        Args:
            cache: Optional schedule cache for testing.
        """
        self.client = get_supabase_client()
        self.cache = cache or get_schedule_cache()

    async def get_price_rows(self, variant_ids: list[str]) -> list[VariantPriceRow]:
        """Fetch raw price rows for a set of variants."""
        if not variant_ids:
            return []
        response = (
            self.client.table("variant_prices")
            .select("variant_id, amount, currency_code, min_quantity, max_quantity")
            .in_("variant_id", variant_ids)
            .execute()
        )
        return response.data or []

    async def get_price_schedules(self, variant_ids: list[str], currency: str) -> dict[str, PriceSchedule]:
        """Get price schedules for several variants in one round trip.

        Cached entries (including cached misses) are served without querying.

        Args:
            variant_ids: Variants to look up.
            currency: Currency code.

        Returns:
            dict[str, PriceSchedule]: Schedules by variant id. Variants with no
                base price in the currency are absent.
        """
        schedules: dict[str, PriceSchedule] = {}
        missing: list[str] = []

        for variant_id in dict.fromkeys(variant_ids):
            if self.cache.contains(variant_id, currency):
                schedule = self.cache.get(variant_id, currency)
                if schedule is not None:
                    schedules[variant_id] = schedule
            else:
                missing.append(variant_id)

        if not missing:
            return schedules

        rows_by_variant: dict[str, list[VariantPriceRow]] = {variant_id: [] for variant_id in missing}
        for row in await self.get_price_rows(missing):
            rows_by_variant.setdefault(row["variant_id"], []).append(row)

        for variant_id in missing:
            schedule = PriceSchedule.from_price_rows(rows_by_variant[variant_id], currency, variant_id)
            self.cache.set(variant_id, currency, schedule)
            if schedule is None:
                logger.warning("Variant %s has no %s base price", variant_id, currency)
            else:
                schedules[variant_id] = schedule

        return schedules

    async def get_price_schedule(self, variant_id: str, currency: str) -> PriceSchedule | None:
        """Get one variant's price schedule.

        Args:
            variant_id: Variant to look up.
            currency: Currency code.

        Returns:
            PriceSchedule | None: None if the variant has no base price in the currency.
        """
        schedules = await self.get_price_schedules([variant_id], currency)
        return schedules.get(variant_id)

    async def get_variants(self, variant_ids: list[str]) -> dict[str, ProductVariantRow]:
        """Fetch product variant rows keyed by id."""
        if not variant_ids:
            return {}
        response = (
            self.client.table("product_variants")
            .select("id, product_id, title, metadata")
            .in_("id", list(dict.fromkeys(variant_ids)))
            .execute()
        )
        return {row["id"]: row for row in response.data or []}

    async def get_variant_discounts(self, variant_ids: list[str]) -> dict[str, VariantDiscount]:
        """Get admin variant discounts keyed by variant id."""
        variants = await self.get_variants(variant_ids)
        discounts = {}
        for variant_id, row in variants.items():
            discount = variant_discount_from_metadata(row.get("metadata"))
            if discount is not None:
                discounts[variant_id] = discount
        return discounts

    async def get_variant_discount(self, variant_id: str) -> VariantDiscount | None:
        """Get the admin discount configured on a single variant."""
        discounts = await self.get_variant_discounts([variant_id])
        return discounts.get(variant_id)

    async def get_variant_products(self, variant_ids: list[str]) -> dict[str, str]:
        """Map variant ids to their product ids."""
        variants = await self.get_variants(variant_ids)
        return {variant_id: row["product_id"] for variant_id, row in variants.items()}

    def invalidate_variant(self, variant_id: str) -> int:
        """Drop cached schedules after an admin edits a variant's prices."""
        return self.cache.invalidate(variant_id)
