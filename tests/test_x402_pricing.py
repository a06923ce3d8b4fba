# tests/test_x402_pricing.py
"""
Unit tests for x402 price handling.
"""
from decimal import Decimal

import pytest

from app.x402.pricing import format_price_label, parse_price, usd_to_atomic_units


class TestFormatPriceLabel:
    """Test "$<amount>" labels."""

    @pytest.mark.parametrize("amount,label", [
        (0.7, "$0.7"),
        (1.25, "$1.25"),
        (2.0, "$2"),
        (0.1, "$0.1"),
        (100, "$100"),
        (Decimal("0.10"), "$0.1"),
    ])
    def test_labels(self, amount, label):
        assert format_price_label(amount) == label


class TestParsePrice:
    """Test price parsing."""

    def test_label(self):
        assert parse_price("$0.01") == Decimal("0.01")

    def test_bare_number(self):
        assert parse_price("0.05") == Decimal("0.05")
        assert parse_price(0.25) == Decimal("0.25")

    @pytest.mark.parametrize("bad", ["$0", "-1", "abc", "$", "NaN", 0])
    def test_rejects_invalid(self, bad):
        with pytest.raises(ValueError):
            parse_price(bad)


class TestUsdToAtomicUnits:
    """Test USD to token unit conversion."""

    def test_one_dollar(self):
        """$1.00 is 1,000,000 units of a 6-decimal token."""
        assert usd_to_atomic_units("$1.00") == 1_000_000

    def test_cent(self):
        assert usd_to_atomic_units("$0.01") == 10_000

    def test_no_float_drift(self):
        """Amounts that are inexact as floats still convert exactly."""
        assert usd_to_atomic_units(0.57) == 570_000
        assert usd_to_atomic_units("$0.7") == 700_000

    def test_other_decimals(self):
        assert usd_to_atomic_units("$1.5", decimals=18) == 1_500_000_000_000_000_000

    def test_rounds_half_up(self):
        assert usd_to_atomic_units("0.0000005") == 1
