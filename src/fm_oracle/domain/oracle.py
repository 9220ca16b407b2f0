"""Per-pool price oracle: step-capped spot price plus a cumulative TWAP integral.

Observations before market start are stored raw (bootstrap). From market start
on, each stored price may move at most twap_step_max bps of the prior stored
price, which bounds what one large trade can do to the TWAP independently of
the AMM's own price impact guard.

The integral is a step integral advanced in discrete ticks:
  write: once a tick has elapsed, fold last_price * (t - last_cumulative_update)
  read:  extend by whole ticks at last_price, then divide by time since start
"""
import logging

from src.fm_common.enums import EventType
from src.fm_common.errors import (
    InvalidPriceError,
    TimestampRegressionError,
    TwapNotReadyError,
)
from src.fm_common.math import (
    checked_add_u128,
    checked_mul_u128,
    mul_div_up,
    mul_div_u128,
    to_u64,
)
from src.fm_events.infrastructure.event_log import EventLog
from src.fm_oracle.domain.models import OracleConfig

logger = logging.getLogger(__name__)


class Oracle:
    def __init__(
        self,
        market_id: str,
        outcome_index: int,
        config: OracleConfig,
        created_at: int,
        events: EventLog,
    ) -> None:
        if config.twap_init_price <= 0:
            raise InvalidPriceError(config.twap_init_price)
        self.market_id = market_id
        self.outcome_index = outcome_index
        self.config = config
        self.last_price: int = config.twap_init_price
        self.last_timestamp: int = created_at
        self.last_liquidity: int = 0
        self.cumulative_price: int = 0  # u128
        self.last_cumulative_update: int = config.market_start_time
        self._events = events

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def write_observation(self, timestamp: int, price: int, liquidity: int) -> int:
        """Record one observation; returns the (possibly capped) stored price."""
        if timestamp < self.last_timestamp:
            raise TimestampRegressionError(self.last_timestamp, timestamp)
        if price <= 0:
            raise InvalidPriceError(price)

        cfg = self.config
        self._accumulate(timestamp)

        if timestamp < cfg.market_start_time:
            stored = price
        else:
            stored = self._cap_price_change(price)

        self.last_price = stored
        self.last_timestamp = timestamp
        self.last_liquidity = liquidity

        self._events.emit(
            EventType.ORACLE_UPDATE,
            timestamp,
            outcome_index=self.outcome_index,
            price=stored,
            raw_price=price,
            liquidity=liquidity,
        )
        if stored != price:
            logger.debug(
                "oracle %s/%d capped price %d -> %d",
                self.market_id,
                self.outcome_index,
                price,
                stored,
            )
        return stored

    def _accumulate(self, timestamp: int) -> None:
        cfg = self.config
        if timestamp <= cfg.market_start_time:
            return
        elapsed = timestamp - self.last_cumulative_update
        if elapsed < cfg.twap_interval:
            return
        self.cumulative_price = checked_add_u128(
            self.cumulative_price, checked_mul_u128(self.last_price, elapsed)
        )
        self.last_cumulative_update = timestamp

    def _cap_price_change(self, price: int) -> int:
        prior = self.last_price
        # rounded up so a small stored price can still move
        max_change = mul_div_up(prior, self.config.twap_step_max, self.config.basis_points)
        if price > prior:
            return min(price, prior + max_change)
        return max(price, prior - max_change)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def get_twap(self, current_time: int) -> int:
        cfg = self.config
        if current_time < cfg.market_start_time:
            raise TwapNotReadyError(
                f"market starts at {cfg.market_start_time}, now {current_time}"
            )
        if current_time - self.last_timestamp < cfg.twap_start_delay:
            raise TwapNotReadyError(
                f"{current_time - self.last_timestamp} ms since last observation, "
                f"need {cfg.twap_start_delay}"
            )
        period = current_time - cfg.market_start_time
        if period == 0:
            raise TwapNotReadyError("no time has elapsed since market start")

        cumulative = self.cumulative_price
        if current_time > self.last_cumulative_update:
            ticks = (current_time - self.last_cumulative_update) // cfg.twap_interval
            if ticks > 0:
                cumulative = checked_add_u128(
                    cumulative,
                    checked_mul_u128(self.last_price, ticks * cfg.twap_interval),
                )
        return to_u64(mul_div_u128(cumulative, cfg.basis_points, period))

    def get_last_price(self) -> int:
        return self.last_price

    def get_last_timestamp(self) -> int:
        return self.last_timestamp

    def get_config(self) -> OracleConfig:
        return self.config
