"""PWP rule lookups from the promo store."""

import logging

from pricing_engine.core.supabase import get_supabase_client
from pricing_engine.models.catalog import PwpRuleRow
from pricing_engine.schemas.pricing import PwpRule

logger = logging.getLogger(__name__)


def pwp_rule_from_row(row: PwpRuleRow) -> PwpRule:
    """Convert a pwp_rules row into a PwpRule.

    Args:
        row: Row with reward_type/reward_value and the trigger column that
            matches trigger_type.

    Returns:
        PwpRule: The rule as the engine consumes it.
    """
    trigger_type = row.get("trigger_type", "product")
    if trigger_type == "cart_value":
        trigger_value = row.get("trigger_cart_value")
    else:
        trigger_value = row.get("trigger_product_id")

    return PwpRule(
        id=row["id"],
        name=row.get("name") or "",
        trigger_type=trigger_type,
        trigger_value=trigger_value,
        reward_variant_id=row.get("reward_variant_id"),
        discount_type=row.get("reward_type", "percentage"),
        discount_value=str(row.get("reward_value") or 0),
        status=row.get("status", "active"),
        starts_at=row.get("starts_at"),
        ends_at=row.get("ends_at"),
    )


class PromoService:
    """Service for reading PWP offers."""

    def __init__(self) -> None:
        """Initialize promo service."""
        self.client = get_supabase_client()

    async def get_pwp_rules(self, rule_ids: list[str]) -> dict[str, PwpRule]:
        """Fetch PWP rules by id, whatever their status.

        Status and schedule window are evaluated by the caller so that an
        inactive rule produces a specific removal reason.

        Args:
            rule_ids: Rules to fetch.

        Returns:
            dict[str, PwpRule]: Rules by id. Unknown ids are absent.
        """
        if not rule_ids:
            return {}
        response = (
            self.client.table("pwp_rules")
            .select("*")
            .in_("id", list(dict.fromkeys(rule_ids)))
            .execute()
        )
        rules = {}
        for row in response.data or []:
            rules[row["id"]] = pwp_rule_from_row(row)
        return rules

    async def get_pwp_rule(self, rule_id: str) -> PwpRule | None:
        """Fetch a single PWP rule."""
        rules = await self.get_pwp_rules([rule_id])
        return rules.get(rule_id)
