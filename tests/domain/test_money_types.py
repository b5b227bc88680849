"""Tests for money coercion and rounding helpers (erp_kernel.db.types)."""

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal

import pytest

from erp_kernel.db.types import (
    ZERO,
    coerce_money,
    coerce_quantity,
    round_money,
    rounding_mode,
)


class TestCoerceMoney:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, ZERO),
            ("", ZERO),
            ("12.5", Decimal("12.50")),
            (" 7 ", Decimal("7.00")),
            (0.1, Decimal("0.10")),
            (3, Decimal("3.00")),
            (Decimal("1.005"), Decimal("1.01")),
        ],
    )
    def test_coerces_driver_values(self, raw, expected):
        assert coerce_money(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "NaN", float("inf")])
    def test_rejects_non_numeric(self, raw):
        with pytest.raises(ValueError):
            coerce_money(raw)


class TestCoerceQuantity:

    def test_values(self):
        assert coerce_quantity(None) == 0
        assert coerce_quantity("12") == 12
        assert coerce_quantity(Decimal("4")) == 4

    def test_rejects_text(self):
        with pytest.raises(ValueError):
            coerce_quantity("many")


class TestRounding:

    def test_round_money_modes(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2.345"), rounding=ROUND_HALF_EVEN) == Decimal("2.34")

    def test_rounding_mode_names(self):
        assert rounding_mode("half_up") == ROUND_HALF_UP
        assert rounding_mode("half_even") == ROUND_HALF_EVEN
        with pytest.raises(ValueError):
            rounding_mode("bankers")
