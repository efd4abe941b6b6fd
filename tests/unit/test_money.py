"""Tests for Money: construction, rounding, arithmetic and formatting."""
from decimal import Decimal

import pytest

from brokerage_ledger.ledger.money import Money


class TestConstruction:
    def test_of_string_and_int(self):
        assert Money.of("150").cents == 15000
        assert Money.of(150).cents == 15000
        assert Money.of("0.07").cents == 7

    def test_of_float_avoids_binary_drift(self):
        assert Money.of(0.1) + Money.of(0.2) == Money.of("0.30")
        # 2.675 is 2.67499999... in binary; the decimal repr is used instead.
        assert Money.of(2.675) == Money.of("2.68")

    @pytest.mark.parametrize(
        "raw, cents",
        [("1.005", 101), ("1.004", 100), ("-1.005", -101), ("0.005", 1), ("0.0049", 0)],
    )
    def test_rounds_half_up(self, raw, cents):
        assert Money.of(raw).cents == cents

    def test_of_money_is_identity(self):
        m = Money.of("3.50")
        assert Money.of(m) is m

    @pytest.mark.parametrize("raw", ["NaN", "Infinity", float("nan"), float("inf"), "abc", ""])
    def test_rejects_non_finite_and_non_numeric(self, raw):
        with pytest.raises(ValueError):
            Money.of(raw)

    @pytest.mark.parametrize("raw", ["1e30", 1e30, "9" * 40])
    def test_rejects_amounts_too_large_to_quantize(self, raw):
        with pytest.raises(ValueError):
            Money.of(raw)

    def test_rejects_bool(self):
        with pytest.raises(TypeError):
            Money.of(True)
        with pytest.raises(TypeError):
            Money(True)

    def test_cents_must_be_int(self):
        with pytest.raises(TypeError):
            Money(1.5)


class TestArithmetic:
    def test_add_sub_neg(self):
        a, b = Money.of("10.25"), Money.of("0.75")
        assert a + b == Money.of("11.00")
        assert a - b == Money.of("9.50")
        assert -a == Money.of("-10.25")

    def test_multiply_by_share_count_is_exact(self):
        assert Money.of("19.99") * 3 == Money.of("59.97")
        assert 3 * Money.of("19.99") == Money.of("59.97")

    def test_multiply_by_float_is_rejected(self):
        with pytest.raises(TypeError):
            Money.of("1.00") * 1.5

    @pytest.mark.parametrize(
        "cents, count, expected",
        [(1000, 3, 333), (2000, 3, 667), (5, 2, 3), (-5, 2, -3), (15000, 20, 750)],
    )
    def test_divide_rounds_half_up_once(self, cents, count, expected):
        assert (Money(cents) / count).cents == expected

    def test_divide_by_zero(self):
        with pytest.raises(ZeroDivisionError):
            Money.of("1.00") / 0

    def test_ordering_and_max_with_zero(self):
        assert Money.of("1.00") < Money.of("1.01")
        assert max(Money.zero(), Money.of("-3.00")) == Money.zero()
        assert Money.of("-0.01").is_negative()
        assert not Money.zero().is_positive()

    def test_not_equal_to_other_types(self):
        assert Money.of("1.00") != Decimal("1.00")


class TestFormatting:
    def test_str_and_decimal(self):
        assert str(Money.of("150")) == "150.00"
        assert Money.of("-0.5").to_decimal() == Decimal("-0.50")

    def test_format(self):
        assert Money.of("1234.5").format() == "$1,234.50"
        assert Money.of("-1234.5").format() == "-$1,234.50"
        assert Money.of("0.07").format("€") == "€0.07"
