"""Tests for Decimal helpers: conversion, power conventions, sentinels, rounding."""

from decimal import Decimal

from perp_risk.numeric.decimals import (
    INFINITY,
    NAN,
    decimal_context,
    decimal_pow,
    floor_to_dp,
    round_half_up,
    safe_div,
    step_for_dp,
    to_decimal,
)


class TestToDecimal:
    """Test to_decimal conversion from int, str, float and Decimal."""

    def test_float_keeps_printed_value(self) -> None:
        """0.1 + 0.2 is exactly 0.3 after conversion."""
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(0.1) + to_decimal(0.2) == Decimal("0.3")

    def test_int_and_str(self) -> None:
        """Integers and numeric strings convert directly."""
        assert to_decimal(5) == Decimal("5")
        assert to_decimal("1.25") == Decimal("1.25")

    def test_decimal_passthrough(self) -> None:
        """A Decimal is returned unchanged."""
        value = Decimal("3.14")
        assert to_decimal(value) is value


class TestDecimalPow:
    """Test decimal_pow conventions for zero base and zero exponent."""

    def test_zero_exponent_is_one(self) -> None:
        """x ** 0 is 1, including 0 ** 0."""
        assert decimal_pow(Decimal("0"), Decimal("0")) == Decimal("1")
        assert decimal_pow(Decimal("7"), Decimal("0")) == Decimal("1")

    def test_zero_base_is_zero(self) -> None:
        """0 ** p is 0 for a fractional p."""
        assert decimal_pow(Decimal("0"), Decimal("0.8")) == Decimal("0")

    def test_integer_exponent_exact(self) -> None:
        """Integer exponents give exact results."""
        assert decimal_pow(Decimal("1000"), Decimal("1")) == Decimal("1000")
        assert decimal_pow(Decimal("1.5"), Decimal("2")) == Decimal("2.25")

    def test_fractional_exponent(self) -> None:
        """Square root via exponent 0.5."""
        assert decimal_pow(Decimal("4"), Decimal("0.5")) == Decimal("2")


class TestSafeDiv:
    """Test safe_div sentinels on a zero denominator."""

    def test_regular_division(self) -> None:
        """Non-zero denominators divide normally."""
        assert safe_div(Decimal("10"), Decimal("4")) == Decimal("2.5")

    def test_zero_denominator_default_nan(self) -> None:
        """The default sentinel is NaN."""
        assert safe_div(Decimal("1"), Decimal("0")).is_nan()

    def test_zero_denominator_custom_sentinel(self) -> None:
        """The caller can choose Infinity as the sentinel."""
        assert safe_div(Decimal("1"), Decimal("0"), INFINITY) == INFINITY


class TestRounding:
    """Test dp steps, half-up rounding and flooring."""

    def test_step_for_dp(self) -> None:
        """dp=2 is a step of 0.01, dp=0 a step of 1."""
        assert step_for_dp(2) == Decimal("0.01")
        assert step_for_dp(0) == Decimal("1")

    def test_round_half_up(self) -> None:
        """Halves round away from zero."""
        assert round_half_up(Decimal("2.345"), 2) == Decimal("2.35")
        assert round_half_up(Decimal("2.344"), 2) == Decimal("2.34")
        assert round_half_up(Decimal("-2.345"), 2) == Decimal("-2.35")

    def test_floor_never_rounds_up(self) -> None:
        """1.239 floors to 1.23."""
        assert floor_to_dp(Decimal("1.239"), 2) == Decimal("1.23")
        assert floor_to_dp(Decimal("5"), 3) == Decimal("5.000")

    def test_special_values_pass_through(self) -> None:
        """Infinity and NaN are returned unrounded."""
        assert round_half_up(INFINITY, 2) == INFINITY
        assert floor_to_dp(NAN, 2).is_nan()


def test_decimal_context_limits_precision() -> None:
    """Precision applies inside the block and is restored after it."""
    with decimal_context(6):
        assert Decimal("1") / Decimal("3") == Decimal("0.333333")
    assert Decimal("1") / Decimal("3") != Decimal("0.333333")
