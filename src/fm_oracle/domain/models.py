"""Domain models for fm_oracle: pure dataclasses, no business logic."""

from dataclasses import dataclass


@dataclass(frozen=True)
class OracleConfig:
    basis_points: int
    twap_start_delay: int      # ms since last observation
    twap_step_max: int         # bps of the prior price per observation
    market_start_time: int     # ms; accumulation and step cap start here
    twap_init_price: int       # basis-point scaled
    twap_interval: int         # ms per accumulation tick
