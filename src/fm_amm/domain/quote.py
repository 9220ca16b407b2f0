"""Constant-product pricing math: pure functions, no pool state.

All results truncate toward zero, so rounding always favours the pool.
"""

from src.fm_common.math import mul_div


def calculate_fee(amount_in: int, fee_bps: int, basis_points: int = 10_000) -> int:
    """fee = amount_in * fee_bps // basis_points (truncating)."""
    return mul_div(amount_in, fee_bps, basis_points)


def calculate_output(amount_in_net: int, reserve_in: int, reserve_out: int) -> int:
    """out = net * reserve_out // (reserve_in + net), 128-bit intermediate."""
    return mul_div(amount_in_net, reserve_out, reserve_in + amount_in_net)


def calculate_ideal_output(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Output at the pre-trade spot price with no fee and no curve."""
    return mul_div(amount_in, reserve_out, reserve_in)


def calculate_price_impact(
    ideal_out: int, amount_out: int, basis_points: int = 10_000
) -> int:
    """(ideal_out - amount_out) / ideal_out in basis points."""
    if ideal_out == 0 or amount_out >= ideal_out:
        return 0
    return mul_div(ideal_out - amount_out, basis_points, ideal_out)


def spot_price(asset_reserve: int, stable_reserve: int, basis_points: int = 10_000) -> int:
    """Stable per asset, basis-point scaled."""
    return mul_div(stable_reserve, basis_points, asset_reserve)


def optimal_liquidity_amounts(
    asset_amount: int, stable_amount: int, asset_reserve: int, stable_reserve: int
) -> tuple[int, int]:
    """Largest (asset, stable) pair within the offer that keeps the reserve ratio.

    If the offered stable covers what the full asset amount needs, asset is the
    limiting side; otherwise stable is.
    """
    stable_needed = mul_div(asset_amount, stable_reserve, asset_reserve)
    if stable_needed <= stable_amount:
        return asset_amount, stable_needed
    asset_needed = mul_div(stable_amount, asset_reserve, stable_reserve)
    return asset_needed, stable_amount


def proportional_withdrawal(
    pct_bps: int, asset_reserve: int, stable_reserve: int, basis_points: int = 10_000
) -> tuple[int, int]:
    return (
        mul_div(asset_reserve, pct_bps, basis_points),
        mul_div(stable_reserve, pct_bps, basis_points),
    )
