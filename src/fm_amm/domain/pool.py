"""Constant-product liquidity pool for one outcome of one proposal.

Spot price is stable per asset (stable_reserve * basis_points // asset_reserve):
selling asset into the pool lowers it, buying asset raises it.

Every mutator validates fully before touching reserves, then writes one oracle
observation with the post-mutation price and emits one event.
"""
import logging

from src.fm_amm.domain.models import LiquidityQuote, SwapQuote, SwapResult
from src.fm_amm.domain.quote import (
    calculate_fee,
    calculate_ideal_output,
    calculate_output,
    calculate_price_impact,
    optimal_liquidity_amounts,
    proportional_withdrawal,
    spot_price,
)
from src.fm_common.engine_config import EngineConfig
from src.fm_common.enums import EventType, SwapDirection
from src.fm_common.errors import (
    InsufficientLiquidityError,
    InvalidPercentageError,
    InvariantViolationError,
    PoolDrainedError,
    PriceImpactTooHighError,
    SlippageExceededError,
    ZeroAmountError,
)
from src.fm_common.math import sqrt, validate_amount
from src.fm_events.infrastructure.event_log import EventLog
from src.fm_oracle.domain.models import OracleConfig
from src.fm_oracle.domain.oracle import Oracle

logger = logging.getLogger(__name__)


class LiquidityPool:
    def __init__(
        self,
        market_id: str,
        outcome_index: int,
        asset_reserve: int,
        stable_reserve: int,
        config: EngineConfig,
        oracle: Oracle,
        events: EventLog,
    ) -> None:
        self.market_id = market_id
        self.outcome_index = outcome_index
        self.asset_reserve = asset_reserve
        self.stable_reserve = stable_reserve
        self.k = asset_reserve * stable_reserve  # u128, display only
        self.fee_bps = config.fee_bps
        self.max_price_impact_bps = config.max_price_impact_bps
        self.minimum_liquidity = config.minimum_liquidity
        self.basis_points = config.basis_points
        self.oracle = oracle
        self._events = events

    @classmethod
    def create(
        cls,
        market_id: str,
        outcome_index: int,
        initial_asset: int,
        initial_stable: int,
        config: EngineConfig,
        market_start_time: int,
        now: int,
        events: EventLog,
    ) -> "LiquidityPool":
        """Seed a pool and its oracle at the initial reserve ratio."""
        validate_amount(initial_asset)
        validate_amount(initial_stable)
        if initial_asset < config.minimum_liquidity or initial_stable < config.minimum_liquidity:
            raise InsufficientLiquidityError(
                f"seed reserves ({initial_asset}, {initial_stable}) below minimum "
                f"{config.minimum_liquidity}"
            )
        init_price = spot_price(initial_asset, initial_stable, config.basis_points)
        oracle = Oracle(
            market_id,
            outcome_index,
            OracleConfig(
                basis_points=config.basis_points,
                twap_start_delay=config.twap_start_delay,
                twap_step_max=config.twap_step_max,
                market_start_time=market_start_time,
                twap_init_price=init_price,
                twap_interval=config.twap_interval,
            ),
            created_at=now,
            events=events,
        )
        pool = cls(market_id, outcome_index, initial_asset, initial_stable, config, oracle, events)
        oracle.write_observation(now, init_price, initial_asset + initial_stable)
        return pool

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_current_price(self) -> int:
        return spot_price(self.asset_reserve, self.stable_reserve, self.basis_points)

    def get_reserves(self) -> tuple[int, int]:
        return self.asset_reserve, self.stable_reserve

    def get_k(self) -> int:
        return self.k

    def liquidity_depth(self) -> int:
        """Geometric mean of the reserves."""
        return sqrt(self.asset_reserve * self.stable_reserve)

    def get_twap(self, now: int) -> int:
        return self.oracle.get_twap(now)

    # ------------------------------------------------------------------
    # Swaps
    # ------------------------------------------------------------------

    def _reserves_for(self, direction: SwapDirection) -> tuple[int, int]:
        if direction == SwapDirection.ASSET_TO_STABLE:
            return self.asset_reserve, self.stable_reserve
        return self.stable_reserve, self.asset_reserve

    def quote_swap(self, direction: SwapDirection, amount_in: int) -> SwapQuote:
        """Price a swap and run the drain/impact guards without mutating state."""
        validate_amount(amount_in)
        if amount_in == 0:
            raise ZeroAmountError("amount_in")
        reserve_in, reserve_out = self._reserves_for(direction)

        fee = calculate_fee(amount_in, self.fee_bps, self.basis_points)
        amount_out = calculate_output(amount_in - fee, reserve_in, reserve_out)
        if amount_out == 0:
            raise ZeroAmountError("amount_out")
        if amount_out >= reserve_out:
            raise PoolDrainedError(amount_out, reserve_out)

        ideal_out = calculate_ideal_output(amount_in, reserve_in, reserve_out)
        impact = calculate_price_impact(ideal_out, amount_out, self.basis_points)
        if impact > self.max_price_impact_bps:
            raise PriceImpactTooHighError(impact, self.max_price_impact_bps)

        if direction == SwapDirection.ASSET_TO_STABLE:
            new_asset, new_stable = reserve_in + amount_in, reserve_out - amount_out
        else:
            new_asset, new_stable = reserve_out - amount_out, reserve_in + amount_in
        return SwapQuote(
            direction=direction,
            amount_in=amount_in,
            fee=fee,
            amount_out=amount_out,
            price_impact_bps=impact,
            price_before=self.get_current_price(),
            price_after=spot_price(new_asset, new_stable, self.basis_points),
        )

    def swap(
        self,
        direction: SwapDirection,
        amount_in: int,
        min_out: int,
        now: int,
        *,
        actor: str | None = None,
    ) -> SwapResult:
        validate_amount(amount_in)
        if amount_in == 0:
            raise ZeroAmountError("amount_in")
        reserve_in, reserve_out = self._reserves_for(direction)

        fee = calculate_fee(amount_in, self.fee_bps, self.basis_points)
        amount_out = calculate_output(amount_in - fee, reserve_in, reserve_out)
        if amount_out < min_out:
            raise SlippageExceededError(min_out, amount_out)
        if amount_out == 0:
            raise ZeroAmountError("amount_out")
        if amount_out >= reserve_out:
            raise PoolDrainedError(amount_out, reserve_out)
        ideal_out = calculate_ideal_output(amount_in, reserve_in, reserve_out)
        impact = calculate_price_impact(ideal_out, amount_out, self.basis_points)
        if impact > self.max_price_impact_bps:
            raise PriceImpactTooHighError(impact, self.max_price_impact_bps)

        # fee stays in the pool
        if direction == SwapDirection.ASSET_TO_STABLE:
            new_asset, new_stable = reserve_in + amount_in, reserve_out - amount_out
        else:
            new_asset, new_stable = reserve_out - amount_out, reserve_in + amount_in
        old_k = self.asset_reserve * self.stable_reserve
        new_k = new_asset * new_stable
        if new_k < old_k:
            raise InvariantViolationError(
                [f"pool {self.outcome_index}: k decreased {old_k} -> {new_k}"]
            )
        self.asset_reserve, self.stable_reserve = new_asset, new_stable
        self.k = new_k

        price_after = self.get_current_price()
        oracle_price = self.oracle.write_observation(
            now, price_after, self.asset_reserve + self.stable_reserve
        )
        self._events.emit(
            EventType.SWAP,
            now,
            actor=actor,
            outcome_index=self.outcome_index,
            price=price_after,
            amount_in=amount_in,
            amount_out=amount_out,
            fee=fee,
            asset_reserve=self.asset_reserve,
            stable_reserve=self.stable_reserve,
        )
        logger.debug(
            "swap %s pool=%s/%d in=%d out=%d fee=%d impact=%dbps price=%d",
            direction.value,
            self.market_id,
            self.outcome_index,
            amount_in,
            amount_out,
            fee,
            impact,
            price_after,
        )
        return SwapResult(
            direction=direction,
            amount_in=amount_in,
            fee=fee,
            amount_out=amount_out,
            price_impact_bps=impact,
            price_after=price_after,
            oracle_price=oracle_price,
        )

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    def quote_add_liquidity(self, asset_amount: int, stable_amount: int) -> LiquidityQuote:
        validate_amount(asset_amount)
        validate_amount(stable_amount)
        if asset_amount == 0 or stable_amount == 0:
            raise ZeroAmountError("liquidity amount")
        asset_used, stable_used = optimal_liquidity_amounts(
            asset_amount, stable_amount, self.asset_reserve, self.stable_reserve
        )
        if asset_used == 0 or stable_used == 0:
            raise ZeroAmountError("scaled liquidity amount")
        return LiquidityQuote(asset_amount=asset_used, stable_amount=stable_used)

    def add_liquidity(
        self, asset_amount: int, stable_amount: int, now: int, *, actor: str | None = None
    ) -> tuple[int, int]:
        """Add at the current ratio; returns (asset_used, stable_used)."""
        quote = self.quote_add_liquidity(asset_amount, stable_amount)
        self.asset_reserve += quote.asset_amount
        self.stable_reserve += quote.stable_amount
        self.k = self.asset_reserve * self.stable_reserve

        price = self.get_current_price()
        self.oracle.write_observation(now, price, self.asset_reserve + self.stable_reserve)
        self._events.emit(
            EventType.LIQUIDITY_ADDED,
            now,
            actor=actor,
            outcome_index=self.outcome_index,
            price=price,
            asset_amount=quote.asset_amount,
            stable_amount=quote.stable_amount,
        )
        return quote.asset_amount, quote.stable_amount

    def quote_remove_liquidity(self, pct_bps: int) -> LiquidityQuote:
        if not (0 < pct_bps <= self.basis_points):
            raise InvalidPercentageError(pct_bps)
        asset_out, stable_out = proportional_withdrawal(
            pct_bps, self.asset_reserve, self.stable_reserve, self.basis_points
        )
        return LiquidityQuote(asset_amount=asset_out, stable_amount=stable_out)

    def remove_liquidity(
        self,
        pct_bps: int,
        min_asset_out: int,
        min_stable_out: int,
        now: int,
        keep_minimum: bool = True,
        *,
        actor: str | None = None,
    ) -> tuple[int, int]:
        """Withdraw pct_bps of both reserves; returns (asset_out, stable_out)."""
        quote = self.quote_remove_liquidity(pct_bps)
        asset_out, stable_out = quote.asset_amount, quote.stable_amount
        if asset_out == 0 and stable_out == 0:
            raise ZeroAmountError("withdrawal")
        if asset_out < min_asset_out:
            raise SlippageExceededError(min_asset_out, asset_out)
        if stable_out < min_stable_out:
            raise SlippageExceededError(min_stable_out, stable_out)
        remaining_asset = self.asset_reserve - asset_out
        remaining_stable = self.stable_reserve - stable_out
        if keep_minimum and (
            remaining_asset < self.minimum_liquidity
            or remaining_stable < self.minimum_liquidity
        ):
            raise InsufficientLiquidityError(
                f"remaining reserves ({remaining_asset}, {remaining_stable}) below "
                f"minimum {self.minimum_liquidity}"
            )

        self.asset_reserve = remaining_asset
        self.stable_reserve = remaining_stable
        self.k = self.asset_reserve * self.stable_reserve

        price = None
        if self.asset_reserve > 0 and self.stable_reserve > 0:
            price = self.get_current_price()
            if price > 0:
                self.oracle.write_observation(
                    now, price, self.asset_reserve + self.stable_reserve
                )
        self._events.emit(
            EventType.LIQUIDITY_REMOVED,
            now,
            actor=actor,
            outcome_index=self.outcome_index,
            price=price,
            asset_amount=asset_out,
            stable_amount=stable_out,
        )
        return asset_out, stable_out
