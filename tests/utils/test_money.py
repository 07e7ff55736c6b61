"""Tests for utils/money.py."""

from decimal import Decimal

import pytest

from utils.money import round_cents, format_cents


class TestRoundCents:

    @pytest.mark.parametrize("value, expected", [
        ("0.5", 1),
        ("1.5", 2),
        ("2.5", 3),
        ("2.4999", 2),
        ("83.325", 83),
        ("-0.5", -1),
    ])
    def test_half_up(self, value, expected):
        assert round_cents(Decimal(value)) == expected


class TestFormatCents:

    @pytest.mark.parametrize("cents, expected", [
        (15750, "157.50"),
        (1, "0.01"),
        (0, "0.00"),
        (100, "1.00"),
        (-250, "-2.50"),
    ])
    def test_two_decimal_rendering(self, cents, expected):
        assert format_cents(cents) == expected
