"""Per-instance engine parameters.

Every proposal is built from one EngineConfig, so fees, guards and TWAP tuning
are reproducible per instance instead of being process-wide constants.
"""

from dataclasses import dataclass

from config.settings import Settings
from src.fm_common.errors import InvalidConfigError

ORACLE_INTERVAL_MS = 60_000


@dataclass(frozen=True)
class EngineConfig:
    basis_points: int = 10_000
    fee_bps: int = 30
    max_price_impact_bps: int = 1_000
    minimum_liquidity: int = 1_000
    twap_step_max: int = 1_000
    twap_start_delay: int = 60_000      # ms since last observation
    twap_interval: int = ORACLE_INTERVAL_MS
    review_period_ms: int = 86_400_000
    trading_period_ms: int = 259_200_000
    min_outcomes: int = 2
    max_outcomes: int = 10

    def validate(self) -> "EngineConfig":
        if self.basis_points <= 0:
            raise InvalidConfigError("basis_points must be positive")
        if not (0 <= self.fee_bps < self.basis_points):
            raise InvalidConfigError(f"fee_bps {self.fee_bps} must be below basis_points")
        if not (0 < self.max_price_impact_bps <= self.basis_points):
            raise InvalidConfigError("max_price_impact_bps must be within (0, basis_points]")
        if not (0 < self.twap_step_max < self.basis_points):
            raise InvalidConfigError("twap_step_max must be within (0, basis_points)")
        if self.minimum_liquidity <= 0:
            raise InvalidConfigError("minimum_liquidity must be positive")
        if self.twap_interval <= 0:
            raise InvalidConfigError("twap_interval must be positive")
        if self.twap_start_delay < 0:
            raise InvalidConfigError("twap_start_delay must not be negative")
        if self.review_period_ms < 0 or self.trading_period_ms <= 0:
            raise InvalidConfigError("stage periods must be positive")
        if not (2 <= self.min_outcomes <= self.max_outcomes):
            raise InvalidConfigError("outcome bounds must satisfy 2 <= min <= max")
        return self


def engine_config_from_settings(settings: Settings) -> EngineConfig:
    return EngineConfig(
        basis_points=settings.BASIS_POINTS,
        fee_bps=settings.FEE_BPS,
        max_price_impact_bps=settings.MAX_PRICE_IMPACT_BPS,
        minimum_liquidity=settings.MINIMUM_LIQUIDITY,
        twap_step_max=settings.TWAP_STEP_MAX,
        twap_start_delay=settings.TWAP_START_DELAY_MS,
        twap_interval=settings.TWAP_INTERVAL_MS,
        review_period_ms=settings.REVIEW_PERIOD_MS,
        trading_period_ms=settings.TRADING_PERIOD_MS,
        min_outcomes=settings.MIN_OUTCOMES,
        max_outcomes=settings.MAX_OUTCOMES,
    ).validate()
