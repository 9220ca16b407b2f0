"""Tests for fm_amm.domain.quote: pure constant-product math."""

from src.fm_amm.domain.quote import (
    calculate_fee,
    calculate_ideal_output,
    calculate_output,
    calculate_price_impact,
    optimal_liquidity_amounts,
    proportional_withdrawal,
    spot_price,
)

R = 1_000_000_000


class TestSwapMath:
    def test_fee_truncates(self) -> None:
        assert calculate_fee(100_000_000, 30) == 300_000
        assert calculate_fee(333, 30) == 0

    def test_output(self) -> None:
        assert calculate_output(99_700_000, R, R) == 90_661_089

    def test_ideal_output_at_spot(self) -> None:
        assert calculate_ideal_output(100_000_000, R, 2 * R) == 200_000_000

    def test_price_impact(self) -> None:
        assert calculate_price_impact(100_000_000, 90_661_089) == 933

    def test_price_impact_never_negative(self) -> None:
        assert calculate_price_impact(100, 150) == 0
        assert calculate_price_impact(0, 0) == 0

    def test_spot_price_is_stable_per_asset(self) -> None:
        assert spot_price(R, R) == 10_000
        assert spot_price(R, 2 * R) == 20_000
        assert spot_price(2 * R, R) == 5_000


class TestLiquidityMath:
    def test_asset_limited(self) -> None:
        assert optimal_liquidity_amounts(1_000, 5_000, R, R) == (1_000, 1_000)

    def test_stable_limited(self) -> None:
        assert optimal_liquidity_amounts(5_000, 1_000, R, R) == (1_000, 1_000)

    def test_keeps_skewed_ratio(self) -> None:
        assert optimal_liquidity_amounts(1_000, 10_000, R, 3 * R) == (1_000, 3_000)

    def test_proportional_withdrawal(self) -> None:
        assert proportional_withdrawal(5_000, R, 3 * R) == (R // 2, 3 * R // 2)
        assert proportional_withdrawal(10_000, 7, 9) == (7, 9)
        assert proportional_withdrawal(1, 9_999, 9_999) == (0, 0)
