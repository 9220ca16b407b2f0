"""Domain models for fm_amm: pure dataclasses, no business logic."""

from dataclasses import dataclass

from src.fm_common.enums import SwapDirection


@dataclass(frozen=True)
class SwapQuote:
    direction: SwapDirection
    amount_in: int
    fee: int
    amount_out: int
    price_impact_bps: int
    price_before: int
    price_after: int   # spot price the pool would show after the swap


@dataclass(frozen=True)
class SwapResult:
    direction: SwapDirection
    amount_in: int
    fee: int
    amount_out: int
    price_impact_bps: int
    price_after: int
    oracle_price: int  # step-capped price the oracle stored


@dataclass(frozen=True)
class LiquidityQuote:
    asset_amount: int
    stable_amount: int
