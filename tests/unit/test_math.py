"""Tests for fm_common.math: overflow-checked integer kernel."""

import pytest

from src.fm_common.errors import (
    AmountOutOfRangeError,
    ArithmeticOverflowError,
    DivisionByZeroError,
)
from src.fm_common.math import (
    U64_MAX,
    U128_MAX,
    checked_add_u128,
    checked_mul_u128,
    mul_div,
    mul_div_u128,
    mul_div_up,
    sqrt,
    to_u64,
    validate_amount,
)


class TestMulDiv:
    def test_floor(self) -> None:
        assert mul_div(10, 10, 3) == 33

    def test_ceiling(self) -> None:
        assert mul_div_up(10, 10, 3) == 34

    def test_exact_division_same_both_ways(self) -> None:
        assert mul_div(6, 10, 3) == mul_div_up(6, 10, 3) == 20

    def test_wide_intermediate(self) -> None:
        # a*b exceeds u64 but the quotient fits
        assert mul_div(U64_MAX, U64_MAX, U64_MAX) == U64_MAX

    def test_result_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflowError):
            mul_div(U64_MAX, U64_MAX, 1)

    def test_ceiling_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflowError):
            mul_div_up(U64_MAX, 2, 1)

    def test_division_by_zero(self) -> None:
        with pytest.raises(DivisionByZeroError) as exc_info:
            mul_div(1, 1, 0)
        assert exc_info.value.code == 4002

    def test_negative_operand_rejected(self) -> None:
        with pytest.raises(ArithmeticOverflowError):
            mul_div(-1, 1, 1)

    def test_u128_variant_allows_wide_result(self) -> None:
        assert mul_div_u128(U64_MAX, U64_MAX, 1) == U64_MAX * U64_MAX


class TestCheckedU128:
    def test_add(self) -> None:
        assert checked_add_u128(U128_MAX - 1, 1) == U128_MAX

    def test_add_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflowError):
            checked_add_u128(U128_MAX, 1)

    def test_mul_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflowError):
            checked_mul_u128(U128_MAX, 2)

    def test_to_u64(self) -> None:
        assert to_u64(U64_MAX) == U64_MAX
        with pytest.raises(ArithmeticOverflowError):
            to_u64(U64_MAX + 1)


class TestSqrt:
    @pytest.mark.parametrize(
        "x, expected",
        [(0, 0), (1, 1), (3, 1), (4, 2), (99, 9), (10**18, 10**9), (U64_MAX, 4294967295)],
    )
    def test_floor_sqrt(self, x: int, expected: int) -> None:
        assert sqrt(x) == expected

    def test_u128_max(self) -> None:
        r = sqrt(U128_MAX)
        assert r * r <= U128_MAX < (r + 1) * (r + 1)


class TestValidateAmount:
    def test_accepts_bounds(self) -> None:
        validate_amount(0)
        validate_amount(U64_MAX)

    @pytest.mark.parametrize("amount", [-1, U64_MAX + 1])
    def test_rejects_out_of_range(self, amount: int) -> None:
        with pytest.raises(AmountOutOfRangeError) as exc_info:
            validate_amount(amount)
        assert exc_info.value.code == 1014
