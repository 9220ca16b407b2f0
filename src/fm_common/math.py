"""Overflow-checked integer arithmetic for reserves, prices and TWAP integrals.

All amounts are unsigned 64-bit integers. Products are formed with 128-bit
headroom and the quotient is range-checked, so no float or Decimal is involved.
"""

from src.fm_common.errors import (
    AmountOutOfRangeError,
    ArithmeticOverflowError,
    DivisionByZeroError,
)

U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1


def _check_operands(limit: int, *values: int) -> None:
    for v in values:
        if v < 0 or v > limit:
            raise ArithmeticOverflowError(f"operand {v} outside unsigned range")


def mul_div(a: int, b: int, c: int) -> int:
    """floor(a * b / c) for u64 operands, failing if the quotient exceeds u64."""
    _check_operands(U64_MAX, a, b, c)
    if c == 0:
        raise DivisionByZeroError()
    result = (a * b) // c
    if result > U64_MAX:
        raise ArithmeticOverflowError(f"mul_div({a}, {b}, {c}) exceeds u64")
    return result


def mul_div_up(a: int, b: int, c: int) -> int:
    """ceil(a * b / c) for u64 operands: (a*b + c - 1) // c."""
    _check_operands(U64_MAX, a, b, c)
    if c == 0:
        raise DivisionByZeroError()
    result = (a * b + c - 1) // c
    if result > U64_MAX:
        raise ArithmeticOverflowError(f"mul_div_up({a}, {b}, {c}) exceeds u64")
    return result


def mul_div_u128(a: int, b: int, c: int) -> int:
    """floor(a * b / c) with u128 operands and result."""
    _check_operands(U128_MAX, a, b, c)
    if c == 0:
        raise DivisionByZeroError()
    result = (a * b) // c
    if result > U128_MAX:
        raise ArithmeticOverflowError(f"mul_div_u128({a}, {b}, {c}) exceeds u128")
    return result


def checked_add_u128(a: int, b: int) -> int:
    result = a + b
    if result > U128_MAX:
        raise ArithmeticOverflowError("u128 accumulator overflow")
    return result


def checked_mul_u128(a: int, b: int) -> int:
    result = a * b
    if result > U128_MAX:
        raise ArithmeticOverflowError("u128 product overflow")
    return result


def to_u64(value: int) -> int:
    """Narrow a u128 value to u64 or fail."""
    if value < 0 or value > U64_MAX:
        raise ArithmeticOverflowError(f"{value} does not fit u64")
    return value


def sqrt(x: int) -> int:
    """Integer square root (floor) of a u128 value, Newton iteration."""
    _check_operands(U128_MAX, x)
    if x < 2:
        return x
    z = x
    y = (x + 1) // 2
    while y < z:
        z = y
        y = (x // y + y) // 2
    return z


def validate_amount(amount: int) -> None:
    """Validate a caller-supplied token/collateral amount as a u64."""
    if amount < 0 or amount > U64_MAX:
        raise AmountOutOfRangeError(amount)
