"""Tests for utils/money.py - integer minor-unit helpers."""

from decimal import Decimal

import pytest

from utils.money import to_minor_units, to_major_units, format_money, format_rate


class TestToMinorUnits:
    """Tests for to_minor_units()."""

    @pytest.mark.parametrize("value,expected", [
        (Decimal("1180.00"), 118000),
        (Decimal("0.01"), 1),
        ("99.99", 9999),
        (250, 25000),
        (None, 0),
    ])
    def test_converts_major_to_minor(self, value, expected):
        assert to_minor_units(value) == expected

    def test_float_goes_through_str(self):
        """0.1 + 0.2 style float noise doesn't leak into paise."""
        assert to_minor_units(0.29) == 29

    def test_half_paisa_rounds_up(self):
        assert to_minor_units(Decimal("10.005")) == 1001

    def test_below_half_paisa_rounds_down(self):
        assert to_minor_units(Decimal("10.004")) == 1000


class TestToMajorUnits:
    """Tests for to_major_units()."""

    def test_two_decimal_places(self):
        assert to_major_units(118000) == Decimal("1180.00")
        assert str(to_major_units(5)) == "0.05"


class TestFormatMoney:
    """Tests for format_money()."""

    def test_thousands_separator(self):
        assert format_money(118000) == "Rs. 1,180.00"

    def test_negative_amount(self):
        assert format_money(-5000) == "-Rs. 50.00"

    def test_custom_label(self):
        assert format_money(100, label="INR") == "INR 1.00"


class TestFormatRate:
    """Tests for format_rate()."""

    @pytest.mark.parametrize("rate,expected", [
        (Decimal("18"), "18"),
        (Decimal("18.00"), "18"),
        (Decimal("12.50"), "12.5"),
        (Decimal("100"), "100"),
        (Decimal("0"), "0"),
    ])
    def test_strips_trailing_zeros(self, rate, expected):
        assert format_rate(rate) == expected
