"""Seeded random-sequence checks over the whole proposal aggregate.

After every call, successful or rejected:
  - main plus outcome sub-balances equal deposits minus withdrawals
  - sub-balance backing, outcome claims and supply consistency hold
  - a successful swap never lowers its pool's reserve product
  - every stored oracle move after market start stays within twap_step_max
  - the lifecycle never regresses and the winner is fixed once set
"""

import random
from collections import defaultdict

import pytest

from src.fm_common.engine_config import EngineConfig
from src.fm_common.enums import AssetType, ProposalStage
from src.fm_common.errors import AppError
from src.fm_escrow.domain.invariants import verify_escrow_invariants
from src.fm_escrow.domain.tokens import ConditionalToken
from src.fm_proposal.domain.proposal import Proposal

R = 1_000_000_000
T0 = 1_000_000
CFG = EngineConfig()
START = T0 + CFG.review_period_ms
END = START + CFG.trading_period_ms


def _live(wallet: list[ConditionalToken]) -> list[ConditionalToken]:
    return [t for t in wallet if not t.consumed and t.balance > 0]


class _Runner:
    def __init__(self, seed: int) -> None:
        self.rng = random.Random(seed)
        seeds = [(2 * R, 2 * R), (2 * R, 2 * R), (R, 2 * R)]
        self.proposal, self.cap, self.wallet = Proposal.create(
            CFG, ["status quo", "a", "b"], seeds, "dao", T0
        )
        self.proposal.advance_stage(self.cap, START)
        self.now = START

    def mint(self) -> None:
        asset_type = self.rng.choice([AssetType.ASSET, AssetType.STABLE])
        amount = self.rng.randint(1, 50_000_000)
        self.wallet += self.proposal.mint_complete_set(asset_type, amount, "trader", self.now)

    def swap(self) -> None:
        live = _live(self.wallet)
        if not live:
            return
        token = self.rng.choice(live)
        if token.balance > 1 and self.rng.random() < 0.5:
            part = self.proposal.split_token(token, self.rng.randint(1, token.balance - 1), self.now)
            self.wallet.append(part)
            token = part
        i = token.outcome_index
        pool = self.proposal.pools[i]
        k_before = pool.get_k()
        price_before = pool.oracle.get_last_price()
        if token.asset_type == AssetType.ASSET:
            out = self.proposal.swap_asset_to_stable(i, token, 0, self.now)
        else:
            out = self.proposal.swap_stable_to_asset(i, token, 0, self.now)
        self.wallet.append(out)
        pool = self.proposal.pools[i]
        assert pool.get_k() >= k_before
        stored = pool.oracle.get_last_price()
        max_step = -(-price_before * CFG.twap_step_max // CFG.basis_points)
        assert abs(stored - price_before) <= max_step

    def redeem_set(self) -> None:
        asset_type = self.rng.choice([AssetType.ASSET, AssetType.STABLE])
        by_outcome: dict[int, ConditionalToken] = {}
        for t in _live(self.wallet):
            if t.asset_type == asset_type:
                by_outcome.setdefault(t.outcome_index, t)
        if len(by_outcome) < self.proposal.state.outcome_count:
            return
        amount = min(t.balance for t in by_outcome.values())
        parts = []
        for i in range(self.proposal.state.outcome_count):
            token = by_outcome[i]
            if token.balance > amount:
                token = self.proposal.split_token(token, amount, self.now)
                self.wallet.append(token)
            parts.append(token)
        paid = self.proposal.redeem_complete_set(asset_type, parts, self.now)
        assert paid.amount == amount

    def add(self) -> None:
        i = self.rng.randrange(self.proposal.state.outcome_count)
        live = _live(self.wallet)
        assets = [t for t in live if t.outcome_index == i and t.asset_type == AssetType.ASSET]
        stables = [t for t in live if t.outcome_index == i and t.asset_type == AssetType.STABLE]
        if assets and stables:
            self.proposal.add_liquidity(self.cap, i, assets[0], stables[0], self.now)

    def remove(self) -> None:
        i = self.rng.randrange(self.proposal.state.outcome_count)
        pct = self.rng.randint(1, 2_000)
        self.wallet += self.proposal.remove_liquidity(self.cap, i, pct, 0, 0, self.now)

    def check(self) -> None:
        p = self.proposal
        escrow = p.escrow
        assert escrow.asset_balance + sum(escrow.outcome_asset_balances) == (
            escrow.total_asset_deposited - escrow.total_asset_withdrawn
        )
        assert escrow.stable_balance + sum(escrow.outcome_stable_balances) == (
            escrow.total_stable_deposited - escrow.total_stable_withdrawn
        )
        assert verify_escrow_invariants(p.escrow, p.pools, p.state, self.wallet) == []


@pytest.mark.parametrize("seed", range(8))
def test_random_trading_preserves_invariants(seed: int) -> None:
    runner = _Runner(seed)
    ops = [runner.mint, runner.mint, runner.swap, runner.swap, runner.swap,
           runner.redeem_set, runner.add, runner.remove]
    outcomes: dict[str, int] = defaultdict(int)
    for _ in range(150):
        runner.now += runner.rng.randint(0, 120_000)
        op = runner.rng.choice(ops)
        try:
            op()
            outcomes["ok"] += 1
        except AppError:
            outcomes["rejected"] += 1
        runner.check()
    assert outcomes["ok"] > 0
    assert runner.now < END


@pytest.mark.parametrize("seed", range(5))
def test_settlement_pays_out_exactly_the_pot(seed: int) -> None:
    runner = _Runner(seed)
    for _ in range(60):
        runner.now += runner.rng.randint(0, 120_000)
        try:
            runner.rng.choice([runner.mint, runner.swap, runner.swap])()
        except AppError:
            pass
    p, cap = runner.proposal, runner.cap
    p.advance_stage(cap, END)
    p.advance_stage(cap, END + CFG.twap_start_delay)
    winner = p.state.get_winning_outcome()

    runner.wallet += p.remove_liquidity(cap, winner, 10_000, 0, 0, END + CFG.twap_start_delay)
    for token in _live(runner.wallet):
        if token.outcome_index == winner:
            p.redeem_winning_tokens(token, END + CFG.twap_start_delay)
        runner.check()
    assert (p.escrow.asset_balance, p.escrow.stable_balance) == (0, 0)


@pytest.mark.parametrize("seed", range(5))
def test_lifecycle_never_regresses(seed: int) -> None:
    rng = random.Random(seed)
    proposal, cap, _ = Proposal.create(CFG, ["a", "b"], [(R, R), (R, R)], "dao", T0)
    now = T0
    last_stage = proposal.stage
    winner = None
    for _ in range(200):
        if last_stage == ProposalStage.FINALIZED:
            break
        now += rng.randint(0, CFG.review_period_ms // 2)
        try:
            proposal.advance_stage(cap, now)
        except AppError:
            pass
        state = proposal.state
        assert proposal.stage >= last_stage
        last_stage = proposal.stage
        if state.finalized:
            assert state.trading_started and state.trading_ended
            winner = state.winning_outcome if winner is None else winner
            assert state.winning_outcome == winner
        else:
            assert state.winning_outcome is None
    assert last_stage == ProposalStage.FINALIZED
    assert winner is not None
    for _ in range(3):
        with pytest.raises(AppError):
            proposal.advance_stage(cap, now + CFG.trading_period_ms)
        assert proposal.state.winning_outcome == winner
