"""Unit tests for ``compute_price``.

Covers:
- Discount application and half-up rounding to cents.
- Zero and full discounts.
- Rejection of non-positive prices, out-of-range discounts and floats.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.sales.exceptions import InvalidPricingInput
from modules.sales.pricing import compute_price

pytestmark = pytest.mark.unit


class TestComputePrice:
    def test_applies_percentage_discount(self):
        assert compute_price(Decimal("900.00"), 20) == Decimal("720.00")

    def test_without_promotion_keeps_base_price(self):
        assert compute_price(Decimal("1000.00")) == Decimal("1000.00")

    def test_full_discount_is_free(self):
        assert compute_price(Decimal("1000.00"), 100) == Decimal("0.00")

    def test_result_has_two_decimal_places(self):
        result = compute_price(Decimal("999.99"), 15)
        assert result.as_tuple().exponent == -2
        assert result == Decimal("849.99")

    def test_rounds_half_up(self):
        # 0.05 * 0.5 = 0.025 -> 0.03
        assert compute_price(Decimal("0.05"), 50) == Decimal("0.03")

    def test_smallest_price_with_half_discount(self):
        assert compute_price(Decimal("0.01"), 50) == Decimal("0.01")

    def test_accepts_int_and_str(self):
        assert compute_price(1000, 25) == Decimal("750.00")
        assert compute_price("1000", "25") == Decimal("750.00")

    def test_is_deterministic(self):
        results = {compute_price(Decimal("123.45"), 33) for _ in range(5)}
        assert results == {Decimal("82.71")}

    def test_never_exceeds_base_price(self):
        base = Decimal("321.09")
        for discount in (0, 1, 33, 50, 99, 100):
            result = compute_price(base, discount)
            assert Decimal("0.00") <= result <= base


class TestComputePriceRejectsInvalidInput:
    @pytest.mark.parametrize("base_price", [Decimal("0"), Decimal("-1.00"), 0, "-10"])
    def test_non_positive_base_price(self, base_price):
        with pytest.raises(InvalidPricingInput, match="base_price"):
            compute_price(base_price, 10)

    @pytest.mark.parametrize("discount", [-1, 101, Decimal("100.01"), "150"])
    def test_discount_out_of_range(self, discount):
        with pytest.raises(InvalidPricingInput, match="discount_percent"):
            compute_price(Decimal("100.00"), discount)

    def test_float_rejected(self):
        with pytest.raises(InvalidPricingInput):
            compute_price(100.0, 10)

    def test_bool_rejected(self):
        with pytest.raises(InvalidPricingInput):
            compute_price(Decimal("100.00"), True)

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
    def test_non_numeric_or_non_finite(self, value):
        with pytest.raises(InvalidPricingInput):
            compute_price(value, 0)

    def test_error_maps_to_422(self):
        assert InvalidPricingInput.status_code == 422
