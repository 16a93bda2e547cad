"""Integration tests for pricing API endpoints."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

PRICE_ROWS = [
    {"variant_id": "v1", "amount": 1000, "currency_code": "myr", "min_quantity": None, "max_quantity": None},
    {"variant_id": "v1", "amount": 800, "currency_code": "myr", "min_quantity": 10, "max_quantity": None},
    {"variant_id": "v_mask", "amount": 500, "currency_code": "myr", "min_quantity": None, "max_quantity": None},
]

VARIANT_ROWS = [{"id": "v1", "product_id": "prod_1", "title": "Serum", "metadata": {"discount": 10}}]

RULE_ROWS = [
    {
        "id": "pwp_1",
        "trigger_type": "cart_value",
        "trigger_cart_value": 15000,
        "reward_variant_id": "v_mask",
        "reward_type": "fixed",
        "reward_value": 500,
        "status": "active",
    }
]


class TestResolveTier:
    """Tests for POST /api/v1/pricing/tiers/resolve."""

    def test_quantity_in_tier(self, client: TestClient) -> None:
        """Test that 12 units of a 10+ tier cost 800 each."""
        response = client.post(
            "/api/v1/pricing/tiers/resolve",
            json={
                "schedule": {"base_price": 1000, "tiers": [{"min_quantity": 10, "max_quantity": None, "unit_price": 800}]},
                "quantity": 12,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["price"] == 800
        assert data["is_bulk_price"] is True
        assert data["tier"]["min_quantity"] == 10

    def test_quantity_below_tier(self, client: TestClient) -> None:
        """Test that the base price applies below the first tier."""
        response = client.post(
            "/api/v1/pricing/tiers/resolve",
            json={"schedule": {"base_price": 1000, "tiers": [{"min_quantity": 10, "unit_price": 800}]}, "quantity": 3},
        )

        assert response.status_code == 200
        assert response.json()["price"] == 1000
        assert response.json()["is_bulk_price"] is False

    def test_gap_between_tiers_resolves_to_base(self, client: TestClient) -> None:
        """Test that a quantity between tiers is priced at base, not rejected."""
        response = client.post(
            "/api/v1/pricing/tiers/resolve",
            json={
                "schedule": {
                    "variant_id": "v1",
                    "base_price": 1000,
                    "tiers": [
                        {"min_quantity": 2, "max_quantity": 5, "unit_price": 900},
                        {"min_quantity": 10, "unit_price": 800},
                    ],
                },
                "quantity": 7,
            },
        )

        assert response.status_code == 200
        assert response.json()["price"] == 1000
        assert response.json()["is_bulk_price"] is False

    def test_overlapping_tiers_are_rejected(self, client: TestClient) -> None:
        """Test that overlapping tiers are a 422 configuration error."""
        response = client.post(
            "/api/v1/pricing/tiers/resolve",
            json={
                "schedule": {
                    "variant_id": "v1",
                    "base_price": 1000,
                    "tiers": [
                        {"min_quantity": 5, "max_quantity": 10, "unit_price": 900},
                        {"min_quantity": 8, "max_quantity": 20, "unit_price": 800},
                    ],
                },
                "quantity": 9,
            },
        )

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "configuration_error"
        assert "overlaps" in data["message"]

    def test_zero_quantity_is_invalid(self, client: TestClient) -> None:
        """Test request validation."""
        response = client.post(
            "/api/v1/pricing/tiers/resolve",
            json={"schedule": {"base_price": 1000}, "quantity": 0},
        )

        assert response.status_code == 422


class TestComposeItem:
    """Tests for POST /api/v1/pricing/items/compose."""

    def test_free_pwp_reward(self, client: TestClient) -> None:
        """Test that a 500 fixed reward on a 500 item is free."""
        response = client.post(
            "/api/v1/pricing/items/compose",
            json={
                "base_price": 500,
                "quantity": 1,
                "pwp_rule": {
                    "id": "pwp_1",
                    "trigger_type": "cart_value",
                    "trigger_value": 15000,
                    "discount_type": "fixed",
                    "discount_value": "500",
                },
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["unit_price"] == 0
        assert data["source"] == "pwp"
        assert data["annotation"] == {"kind": "pwp", "rule_id": "pwp_1", "original_price": 500, "discount_amount": 500}

    def test_variant_discount(self, client: TestClient) -> None:
        """Test a percentage variant discount."""
        response = client.post(
            "/api/v1/pricing/items/compose",
            json={"base_price": 1000, "quantity": 1, "variant_discount": {"discount_type": "percentage", "value": "10"}},
        )

        assert response.status_code == 200
        assert response.json()["unit_price"] == 900
        assert response.json()["annotation"]["kind"] == "variant_discount"


class TestPriceLine:
    """Tests for POST /api/v1/pricing/lines."""

    @patch("pricing_engine.services.promo_service.get_supabase_client")
    @patch("pricing_engine.services.catalog_service.get_supabase_client")
    def test_bulk_line(
        self,
        mock_catalog_supabase: MagicMock,
        mock_promo_supabase: MagicMock,
        client: TestClient,
        supabase_tables,
    ) -> None:
        """Test that a tier beats the variant discount."""
        mock_catalog_supabase.return_value = supabase_tables(
            {"variant_prices": PRICE_ROWS, "product_variants": VARIANT_ROWS}
        )
        mock_promo_supabase.return_value = supabase_tables({"pwp_rules": RULE_ROWS})

        response = client.post("/api/v1/pricing/lines", json={"variant_id": "v1", "quantity": 12})

        assert response.status_code == 200
        data = response.json()
        assert data["unit_price"] == 800
        assert data["annotation"] == {"kind": "bulk_tier", "is_bulk_price": True, "min_quantity": 10, "original_price": 1000}

    @patch("pricing_engine.services.promo_service.get_supabase_client")
    @patch("pricing_engine.services.catalog_service.get_supabase_client")
    def test_variant_discount_line(
        self,
        mock_catalog_supabase: MagicMock,
        mock_promo_supabase: MagicMock,
        client: TestClient,
        supabase_tables,
    ) -> None:
        """Test that the variant discount applies below the tier."""
        mock_catalog_supabase.return_value = supabase_tables(
            {"variant_prices": PRICE_ROWS, "product_variants": VARIANT_ROWS}
        )
        mock_promo_supabase.return_value = supabase_tables({"pwp_rules": RULE_ROWS})

        response = client.post("/api/v1/pricing/lines", json={"variant_id": "v1", "quantity": 2})

        assert response.status_code == 200
        assert response.json()["unit_price"] == 900

    @patch("pricing_engine.services.promo_service.get_supabase_client")
    @patch("pricing_engine.services.catalog_service.get_supabase_client")
    def test_pwp_reward_line(
        self,
        mock_catalog_supabase: MagicMock,
        mock_promo_supabase: MagicMock,
        client: TestClient,
        supabase_tables,
    ) -> None:
        """Test pricing a reward line by its rule."""
        mock_catalog_supabase.return_value = supabase_tables({"variant_prices": PRICE_ROWS})
        mock_promo_supabase.return_value = supabase_tables({"pwp_rules": RULE_ROWS})

        response = client.post(
            "/api/v1/pricing/lines",
            json={"variant_id": "v_mask", "quantity": 1, "pwp_rule_id": "pwp_1"},
        )

        assert response.status_code == 200
        assert response.json()["unit_price"] == 0

    @patch("pricing_engine.services.promo_service.get_supabase_client")
    @patch("pricing_engine.services.catalog_service.get_supabase_client")
    def test_unpriced_variant(
        self,
        mock_catalog_supabase: MagicMock,
        mock_promo_supabase: MagicMock,
        client: TestClient,
        supabase_tables,
    ) -> None:
        """Test that a variant with no price is a 400."""
        mock_catalog_supabase.return_value = supabase_tables({"variant_prices": []})
        mock_promo_supabase.return_value = supabase_tables({})

        response = client.post("/api/v1/pricing/lines", json={"variant_id": "v9", "quantity": 1})

        assert response.status_code == 400
        assert response.json()["detail"] == "Variant v9 has no MYR price"


class TestInvalidateVariant:
    """Tests for POST /api/v1/pricing/variants/{variant_id}/invalidate."""

    @patch("pricing_engine.services.promo_service.get_supabase_client")
    @patch("pricing_engine.services.catalog_service.get_supabase_client")
    def test_invalidate_after_lookup(
        self,
        mock_catalog_supabase: MagicMock,
        mock_promo_supabase: MagicMock,
        client: TestClient,
        supabase_tables,
    ) -> None:
        """Test that a cached schedule is dropped."""
        mock_catalog_supabase.return_value = supabase_tables(
            {"variant_prices": PRICE_ROWS, "product_variants": VARIANT_ROWS}
        )
        mock_promo_supabase.return_value = supabase_tables({})
        client.post("/api/v1/pricing/lines", json={"variant_id": "v1", "quantity": 1})

        response = client.post("/api/v1/pricing/variants/v1/invalidate")

        assert response.status_code == 200
        assert response.json() == {"variant_id": "v1", "invalidated": 1}
