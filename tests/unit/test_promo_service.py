"""Unit tests for PromoService."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from pricing_engine.services.promo_service import PromoService, pwp_rule_from_row

RULE_ROWS = [
    {
        "id": "pwp_1",
        "name": "Spend RM150, get a mask",
        "trigger_type": "cart_value",
        "trigger_cart_value": 15000,
        "trigger_product_id": None,
        "reward_variant_id": "v_mask",
        "reward_type": "fixed",
        "reward_value": 500,
        "status": "active",
        "starts_at": None,
        "ends_at": None,
    },
    {
        "id": "pwp_2",
        "name": "Buy the serum, half-price toner",
        "trigger_type": "product",
        "trigger_cart_value": None,
        "trigger_product_id": "prod_serum",
        "reward_variant_id": "v_toner",
        "reward_type": "percentage",
        "reward_value": 50,
        "status": "non-active",
        "starts_at": "2026-01-01T00:00:00+00:00",
        "ends_at": None,
    },
]


@pytest.fixture
def supabase(supabase_tables) -> MagicMock:
    return supabase_tables({"pwp_rules": RULE_ROWS})


@pytest.fixture
def service(supabase: MagicMock) -> PromoService:
    with patch("pricing_engine.services.promo_service.get_supabase_client", return_value=supabase):
        return PromoService()


class TestPwpRuleFromRow:
    """Tests for pwp_rule_from_row."""

    def test_cart_value_rule(self) -> None:
        """Test that the cart value column becomes the trigger value."""
        rule = pwp_rule_from_row(RULE_ROWS[0])

        assert rule.trigger_value == 15000
        assert rule.discount_type == "fixed"
        assert rule.discount_value == Decimal("500")
        assert rule.reward_variant_id == "v_mask"

    def test_product_rule(self) -> None:
        """Test that the product column becomes the trigger value."""
        rule = pwp_rule_from_row(RULE_ROWS[1])

        assert rule.trigger_value == "prod_serum"
        assert rule.status == "non-active"
        assert rule.starts_at is not None


class TestPromoService:
    """Tests for PromoService."""

    @pytest.mark.asyncio
    async def test_get_pwp_rules_includes_inactive(self, service: PromoService) -> None:
        """Test that rules are returned whatever their status."""
        rules = await service.get_pwp_rules(["pwp_1", "pwp_2"])

        assert set(rules) == {"pwp_1", "pwp_2"}
        assert rules["pwp_2"].inactive_reason() == "PWP offer is no longer active"

    @pytest.mark.asyncio
    async def test_get_pwp_rules_empty(self, service: PromoService, supabase: MagicMock) -> None:
        """Test that an empty id list does not query."""
        assert await service.get_pwp_rules([]) == {}

        supabase.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_pwp_rule_missing(self, supabase_tables) -> None:
        """Test that an unknown rule is None."""
        with patch(
            "pricing_engine.services.promo_service.get_supabase_client",
            return_value=supabase_tables({"pwp_rules": []}),
        ):
            service = PromoService()

        assert await service.get_pwp_rule("pwp_9") is None
