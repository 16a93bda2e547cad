"""Unit tests for bulk tier resolution."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pricing_engine.core.exceptions import ConfigurationError, InvalidScheduleError
from pricing_engine.schemas.pricing import PriceSchedule, PriceTier
from pricing_engine.services.tier_resolver import find_tier, resolve, validate_schedule


def make_schedule(base_price: int, *tiers: tuple[int, int | None, int]) -> PriceSchedule:
    """Build a schedule from (min, max, price) triples."""
    return PriceSchedule(
        variant_id="variant_1",
        base_price=base_price,
        tiers=tuple(PriceTier(min_quantity=lo, max_quantity=hi, unit_price=price) for lo, hi, price in tiers),
    )


class TestResolve:
    """Tests for resolve."""

    def test_quantity_in_unbounded_tier(self) -> None:
        """Test that 12 units hit the 10+ tier at 800."""
        schedule = make_schedule(1000, (10, None, 800))

        result = resolve(schedule, 12)

        assert result.price == 800
        assert result.is_bulk_price is True
        assert result.tier.min_quantity == 10

    def test_quantity_below_every_tier_uses_base(self) -> None:
        """Test that quantities below the first tier get the base price."""
        schedule = make_schedule(1000, (10, None, 800))

        result = resolve(schedule, 9)

        assert result.price == 1000
        assert result.is_bulk_price is False
        assert result.tier is None

    def test_empty_schedule_uses_base(self) -> None:
        """Test that a schedule without tiers resolves to the base price."""
        result = resolve(make_schedule(1000), 50)

        assert result.price == 1000
        assert result.tier is None

    def test_highest_matching_tier_wins(self) -> None:
        """Test selection among contiguous tiers."""
        schedule = make_schedule(1000, (5, 9, 900), (10, 19, 800), (20, None, 700))

        assert resolve(schedule, 5).price == 900
        assert resolve(schedule, 19).price == 800
        assert resolve(schedule, 20).price == 700
        assert resolve(schedule, 500).price == 700

    def test_tiers_out_of_order_are_sorted(self) -> None:
        """Test that tier order in the schedule does not matter."""
        schedule = make_schedule(1000, (20, None, 700), (5, 19, 900))

        assert resolve(schedule, 25).price == 700
        assert resolve(schedule, 6).price == 900


class TestValidateSchedule:
    """Tests for validate_schedule."""

    def test_overlapping_tiers_raise_configuration_error(self) -> None:
        """Test that 5-10 and 8-20 overlap and are rejected on resolve."""
        schedule = make_schedule(1000, (5, 10, 900), (8, 20, 800))

        with pytest.raises(ConfigurationError):
            resolve(schedule, 9)

    def test_unbounded_tier_below_another_tier_raises(self) -> None:
        """Test that only the highest tier may be unbounded."""
        schedule = make_schedule(1000, (5, None, 900), (10, None, 800))

        with pytest.raises(InvalidScheduleError, match="Unbounded"):
            validate_schedule(schedule)

    def test_inverted_range_raises(self) -> None:
        """Test that max below min is rejected."""
        schedule = make_schedule(1000, (10, 5, 900))

        with pytest.raises(InvalidScheduleError):
            validate_schedule(schedule)

    def test_tier_priced_above_base_is_accepted(self) -> None:
        """Test that tier prices are not checked against the base price."""
        schedule = make_schedule(1000, (10, None, 1100))

        validate_schedule(schedule)
        assert resolve(schedule, 10).price == 1100

    def test_error_carries_variant_id(self) -> None:
        """Test that the error names the misconfigured variant."""
        schedule = make_schedule(1000, (5, 10, 900), (8, 20, 800))

        with pytest.raises(InvalidScheduleError) as exc_info:
            validate_schedule(schedule)

        assert exc_info.value.variant_id == "variant_1"
        assert exc_info.value.details == {"variant_id": "variant_1"}

    def test_gap_between_tiers_uses_base(self) -> None:
        """Test that a quantity between 2-5 and 10+ falls back to the base price."""
        schedule = make_schedule(1000, (2, 5, 900), (10, None, 800))

        result = resolve(schedule, 7)

        assert result.price == 1000
        assert result.tier is None
        assert resolve(schedule, 4).price == 900
        assert resolve(schedule, 10).price == 800

    def test_bounded_highest_tier_uses_base(self) -> None:
        """Test that quantities outside a bounded top tier get the base price."""
        schedule = make_schedule(1000, (10, 20, 800))

        assert resolve(schedule, 5).price == 1000
        assert resolve(schedule, 15).price == 800
        assert resolve(schedule, 21).price == 1000

    def test_adjacent_tiers_are_valid(self) -> None:
        """Test that touching but non-overlapping tiers pass."""
        validate_schedule(make_schedule(1000, (5, 9, 900), (10, None, 800)))


class TestFindTier:
    """Tests for find_tier."""

    def test_returns_none_without_match(self) -> None:
        """Test that no tier is returned below every minimum."""
        tiers = (PriceTier(min_quantity=10, unit_price=800),)

        assert find_tier(tiers, 3) is None


@st.composite
def valid_schedules(draw: st.DrawFn) -> PriceSchedule:
    """Generate non-overlapping schedules with non-increasing tier prices."""
    base_price = draw(st.integers(min_value=0, max_value=100_000))
    boundaries = sorted(draw(st.sets(st.integers(min_value=2, max_value=500), max_size=6)))
    tiers = []
    price = base_price
    for index, lower in enumerate(boundaries):
        price = draw(st.integers(min_value=0, max_value=price))
        upper = boundaries[index + 1] - 1 if index + 1 < len(boundaries) else None
        tiers.append((lower, upper, price))
    return make_schedule(base_price, *tiers)


class TestTierProperties:
    """Property tests for resolve."""

    @given(schedule=valid_schedules(), quantity=st.integers(min_value=1, max_value=1000))
    def test_price_never_increases_with_quantity(self, schedule: PriceSchedule, quantity: int) -> None:
        """Test that resolve(s, q+1).price <= resolve(s, q).price."""
        assert resolve(schedule, quantity + 1).price <= resolve(schedule, quantity).price

    @given(schedule=valid_schedules(), quantity=st.integers(min_value=1, max_value=1000))
    def test_price_never_exceeds_base(self, schedule: PriceSchedule, quantity: int) -> None:
        """Test that a resolved price is at most the base price."""
        assert resolve(schedule, quantity).price <= schedule.base_price


@st.composite
def gapped_schedules(draw: st.DrawFn) -> PriceSchedule:
    """Generate non-overlapping schedules that may leave gaps and end bounded."""
    base_price = draw(st.integers(min_value=0, max_value=100_000))
    boundaries = sorted(draw(st.sets(st.integers(min_value=1, max_value=500), max_size=8)))
    tiers = []
    for index, lower in enumerate(boundaries):
        limit = boundaries[index + 1] - 1 if index + 1 < len(boundaries) else 1000
        upper = draw(st.none() | st.integers(min_value=lower, max_value=limit))
        if upper is None and index + 1 < len(boundaries):
            upper = limit
        tiers.append((lower, upper, draw(st.integers(min_value=0, max_value=200_000))))
    return make_schedule(base_price, *tiers)


class TestFallbackProperties:
    """Property tests for quantities outside every tier."""

    @given(schedule=gapped_schedules(), quantity=st.integers(min_value=1, max_value=1200))
    def test_uncovered_quantity_resolves_to_base(self, schedule: PriceSchedule, quantity: int) -> None:
        """Test that resolve never fails and only covered quantities get a tier."""
        result = resolve(schedule, quantity)

        covered = [tier for tier in schedule.tiers if tier.matches(quantity)]
        if covered:
            assert result.tier == covered[0]
            assert result.price == covered[0].unit_price
        else:
            assert result.tier is None
            assert result.price == schedule.base_price
