"""
test_amounts.py - HIVE amount calculation and amount-string parsing.

Covers the bound invariant for every positive price, the zero-price
fallback, milli-HIVE rounding, and MalformedAmount on bad webhook input.
"""

from decimal import Decimal

import pytest

from signup.amounts import (
    AmountBounds,
    calculate_hive_amount,
    parse_amount,
    to_decimal,
)
from signup.errors import MalformedAmount

DEFAULT_BOUNDS = AmountBounds(Decimal("1.00"), Decimal("10.00"))


# ── calculate_hive_amount ───────────────────────────────────────────────────

class TestCalculateHiveAmount:

    def test_in_range_amount_is_rounded_to_three_places(self):
        bounds = AmountBounds(Decimal("0.5"), Decimal("10"))
        quote = calculate_hive_amount(Decimal("3.00"), Decimal("4.00"), bounds)
        assert quote.amount == Decimal("0.750")
        assert str(quote.amount) == "0.750"
        assert not quote.clamped
        assert not quote.fallback

    def test_below_minimum_is_clamped_up(self):
        # $3.00 at $4.00/HIVE is 0.75 HIVE, under the 1.00 floor
        quote = calculate_hive_amount(Decimal("3.00"), Decimal("4.00"), DEFAULT_BOUNDS)
        assert quote.amount == Decimal("1.000")
        assert quote.clamped

    def test_above_maximum_is_clamped_down(self):
        # a misreported near-zero price
        quote = calculate_hive_amount(Decimal("3.00"), Decimal("0.0001"), DEFAULT_BOUNDS)
        assert quote.amount == Decimal("10.000")
        assert quote.clamped

    def test_zero_price_returns_minimum(self):
        quote = calculate_hive_amount(Decimal("3.00"), Decimal("0"), DEFAULT_BOUNDS)
        assert quote.amount == Decimal("1.000")
        assert quote.fallback
        assert not quote.clamped

    @pytest.mark.parametrize("usd", ["0", "0.01", "3.00", "25", "1000000"])
    def test_zero_price_ignores_usd_amount(self, usd):
        quote = calculate_hive_amount(Decimal(usd), Decimal("0"), DEFAULT_BOUNDS)
        assert quote.amount == DEFAULT_BOUNDS.min

    def test_rounds_half_up(self):
        bounds = AmountBounds(Decimal("0"), Decimal("100"))
        assert calculate_hive_amount(Decimal("2"), Decimal("3"), bounds).amount == Decimal("0.667")
        assert calculate_hive_amount(Decimal("1"), Decimal("3"), bounds).amount == Decimal("0.333")
        assert calculate_hive_amount(Decimal("0.0025"), Decimal("1"), bounds).amount == Decimal("0.003")

    def test_result_always_within_bounds(self):
        prices = ["0.00001", "0.01", "0.1", "0.3", "0.299", "0.3001", "1", "2.5", "3", "9999"]
        usds = ["0", "0.01", "1", "3", "3.00", "10", "29.99", "1000"]
        for p in prices:
            for u in usds:
                quote = calculate_hive_amount(Decimal(u), Decimal(p), DEFAULT_BOUNDS)
                assert DEFAULT_BOUNDS.min <= quote.amount <= DEFAULT_BOUNDS.max, (u, p)

    def test_accepts_floats_without_binary_noise(self):
        bounds = AmountBounds(0.5, 10.0)
        quote = calculate_hive_amount(3.0, 4.0, bounds)
        assert quote.amount == Decimal("0.750")


# ── AmountBounds ────────────────────────────────────────────────────────────

class TestAmountBounds:

    def test_bounds_are_quantized(self):
        bounds = AmountBounds(Decimal("1"), Decimal("10"))
        assert str(bounds.min) == "1.000"
        assert str(bounds.max) == "10.000"

    def test_max_below_min_rejected(self):
        with pytest.raises(ValueError):
            AmountBounds(Decimal("5"), Decimal("1"))

    def test_negative_min_rejected(self):
        with pytest.raises(ValueError):
            AmountBounds(Decimal("-1"), Decimal("1"))


# ── parse_amount ────────────────────────────────────────────────────────────

class TestParseAmount:

    def test_parses_magnitude_and_unit(self):
        parsed = parse_amount("3.000 HIVE")
        assert parsed.magnitude == Decimal("3.000")
        assert parsed.unit == "HIVE"

    def test_unit_is_uppercased(self):
        assert parse_amount("0.750 hive").unit == "HIVE"

    def test_integer_magnitude(self):
        assert parse_amount("5 HBD").magnitude == Decimal("5")

    def test_surrounding_whitespace_tolerated(self):
        assert parse_amount("  1.5   HIVE ").magnitude == Decimal("1.5")

    @pytest.mark.parametrize("text", [
        "",
        "HIVE",
        "3.000",
        "3.000HIVE",
        "-1.000 HIVE",
        "1e3 HIVE",
        "abc HIVE",
        "1.000 HIVE extra",
        "1..0 HIVE",
    ])
    def test_malformed(self, text):
        with pytest.raises(MalformedAmount):
            parse_amount(text)

    def test_non_string_rejected(self):
        with pytest.raises(MalformedAmount):
            parse_amount(3.0)

    def test_missing_amount_rejected(self):
        with pytest.raises(MalformedAmount, match="required"):
            parse_amount(None)


def test_to_decimal_from_float_uses_repr():
    assert to_decimal(0.1) == Decimal("0.1")
