# src/fm_escrow/domain/invariants.py
"""Escrow and lifecycle invariants (INV-1 .. INV-5).

INV-1  main + sum(sub_balance) == deposited - withdrawn; no balance negative
INV-2  sub_balance[i] == supply[i].total_supply                (per live outcome)
INV-3  pool[i] reserve + supply[i].total_supply == deposited - withdrawn
                                                               (per live outcome, pools given)
INV-4  supply[i].total_supply == sum of live token balances   (wallet given)
INV-5  finalized => trading_ended => trading_started; winner set iff finalized

Live outcomes are all outcomes until finalization, then only the winner.
"""
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from src.fm_amm.domain.pool import LiquidityPool
from src.fm_common.enums import AssetType
from src.fm_common.errors import InvariantViolationError
from src.fm_escrow.domain.escrow import TokenEscrow
from src.fm_escrow.domain.tokens import ConditionalToken
from src.fm_market.domain.state import MarketState

logger = logging.getLogger(__name__)

_TYPES = (AssetType.ASSET, AssetType.STABLE)


def _live_outcomes(escrow: TokenEscrow, state: MarketState) -> range | list[int]:
    if state.finalized and state.winning_outcome is not None:
        return [state.winning_outcome]
    return range(len(escrow.asset_supplies))


def _supply_total(escrow: TokenEscrow, asset_type: AssetType, i: int) -> int:
    supplies = escrow.asset_supplies if asset_type == AssetType.ASSET else escrow.stable_supplies
    return supplies[i].total_supply


def check_conservation(escrow: TokenEscrow) -> list[str]:
    violations: list[str] = []
    for asset_type in _TYPES:
        name = asset_type.value.lower()
        main = escrow.main_balance(asset_type)
        subs = escrow.sub_balances(asset_type)
        net = escrow.net_deposited(asset_type)
        if main + sum(subs) != net:
            violations.append(
                f"INV-1 violated: {name}_balance({main}) + sum(outcome_{name}_balances)"
                f"({sum(subs)}) != deposited - withdrawn({net})"
            )
        if main < 0 or any(b < 0 for b in subs):
            violations.append(
                f"INV-1 violated: negative {name} balance: main={main} subs={subs}"
            )
    return violations


def check_backing(escrow: TokenEscrow, state: MarketState) -> list[str]:
    violations: list[str] = []
    for i in _live_outcomes(escrow, state):
        for asset_type in _TYPES:
            sub = escrow.sub_balances(asset_type)[i]
            supply = _supply_total(escrow, asset_type, i)
            if sub != supply:
                violations.append(
                    f"INV-2 violated: outcome {i} {asset_type.value}: "
                    f"sub_balance({sub}) != supply({supply})"
                )
    return violations


def check_outcome_claims(
    escrow: TokenEscrow, pools: Sequence[LiquidityPool], state: MarketState
) -> list[str]:
    violations: list[str] = []
    for i in _live_outcomes(escrow, state):
        if i >= len(pools):
            continue
        reserves = dict(zip(_TYPES, pools[i].get_reserves()))
        for asset_type in _TYPES:
            supply = _supply_total(escrow, asset_type, i)
            net = escrow.net_deposited(asset_type)
            if reserves[asset_type] + supply != net:
                violations.append(
                    f"INV-3 violated: outcome {i} {asset_type.value}: "
                    f"reserve({reserves[asset_type]}) + supply({supply}) != "
                    f"deposited - withdrawn({net})"
                )
    return violations


def check_supplies(
    escrow: TokenEscrow, tokens: Iterable[ConditionalToken]
) -> list[str]:
    held: dict[tuple[AssetType, int], int] = defaultdict(int)
    for token in tokens:
        if not token.consumed and token.market_id == escrow.market_id:
            held[(token.asset_type, token.outcome_index)] += token.balance
    violations: list[str] = []
    for i in range(len(escrow.asset_supplies)):
        for supply in (escrow.asset_supplies[i], escrow.stable_supplies[i]):
            live = held[(supply.asset_type, i)]
            if supply.total_supply != live:
                violations.append(
                    f"INV-4 violated: outcome {i} {supply.asset_type.value} "
                    f"supply({supply.total_supply}) != live tokens({live})"
                )
    return violations


def check_state_monotonicity(state: MarketState) -> list[str]:
    violations: list[str] = []
    if state.finalized and not state.trading_ended:
        violations.append("INV-5 violated: finalized before trading ended")
    if state.trading_ended and not state.trading_started:
        violations.append("INV-5 violated: trading ended before it started")
    if state.finalized != (state.winning_outcome is not None):
        violations.append(
            f"INV-5 violated: finalized={state.finalized} "
            f"winning_outcome={state.winning_outcome}"
        )
    return violations


def verify_escrow_invariants(
    escrow: TokenEscrow,
    pools: Sequence[LiquidityPool] | None = None,
    state: MarketState | None = None,
    tokens: Iterable[ConditionalToken] | None = None,
) -> list[str]:
    """Run every applicable check. Returns list of violation strings."""
    state = state or escrow.market_state
    violations = check_conservation(escrow)
    violations += check_backing(escrow, state)
    if pools is not None:
        violations += check_outcome_claims(escrow, pools, state)
    if tokens is not None:
        violations += check_supplies(escrow, tokens)
    violations += check_state_monotonicity(state)
    for msg in violations:
        logger.error("%s (market=%s)", msg, escrow.market_id)
    return violations


def assert_escrow_invariants(
    escrow: TokenEscrow,
    pools: Sequence[LiquidityPool] | None = None,
    state: MarketState | None = None,
    tokens: Iterable[ConditionalToken] | None = None,
) -> None:
    violations = verify_escrow_invariants(escrow, pools, state, tokens)
    if violations:
        raise InvariantViolationError(violations)
