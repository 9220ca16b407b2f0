"""Proposal aggregate: one MarketState, one escrow and one pool per outcome.

Every public mutator is a single transaction. The aggregate is snapshotted on
entry (together with the caller's input tokens) and restored if anything
raises, so a failed call leaves no partial mutation and emits no events.
Escrow invariants are asserted before each call commits.
"""
import copy
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from src.fm_amm.domain.models import SwapQuote
from src.fm_amm.domain.pool import LiquidityPool
from src.fm_common.engine_config import EngineConfig
from src.fm_common.enums import AssetType, EventType, ProposalStage, SwapDirection
from src.fm_common.errors import (
    AlreadyFinalizedError,
    InsufficientLiquidityError,
    OutcomeCountMismatchError,
    TooEarlyError,
    TradingAlreadyEndedError,
    TradingNotEndedError,
)
from src.fm_escrow.domain.escrow import TokenEscrow
from src.fm_escrow.domain.invariants import (
    assert_escrow_invariants,
    verify_escrow_invariants,
)
from src.fm_escrow.domain.tokens import CollateralBalance, ConditionalToken, Supply
from src.fm_events.infrastructure.event_log import EventLog
from src.fm_market.domain.capabilities import AdminCap
from src.fm_market.domain.state import MarketState
from src.fm_proposal.domain.settlement import select_winner

logger = logging.getLogger(__name__)


class Proposal:
    def __init__(
        self,
        proposal_id: str,
        proposer: str,
        config: EngineConfig,
        state: MarketState,
        escrow: TokenEscrow,
        pools: list[LiquidityPool],
        events: EventLog,
        market_start_time: int,
    ) -> None:
        self.proposal_id = proposal_id
        self.proposer = proposer
        self.config = config
        self.state = state
        self.escrow = escrow
        self.pools = pools
        self.events = events
        self.market_start_time = market_start_time

    @classmethod
    def create(
        cls,
        config: EngineConfig,
        outcome_messages: list[str],
        initial_amounts: list[tuple[int, int]],
        proposer: str,
        now: int,
        proposal_id: str | None = None,
    ) -> tuple["Proposal", AdminCap, list[ConditionalToken]]:
        """Build and seed a proposal.

        Returns the proposal, its AdminCap, and the conditional tokens minted to
        the proposer for outcomes seeded below the largest per-outcome amount.
        """
        config.validate()
        proposal_id = proposal_id or uuid.uuid4().hex
        events = EventLog(proposal_id)
        state, cap = MarketState.create(
            proposal_id,
            outcome_messages,
            len(outcome_messages),
            now,
            events,
            min_outcomes=config.min_outcomes,
            max_outcomes=config.max_outcomes,
            admin=proposer,
        )
        if len(initial_amounts) != state.outcome_count:
            raise OutcomeCountMismatchError(state.outcome_count, len(initial_amounts))

        market_start_time = now + config.review_period_ms
        pools = [
            LiquidityPool.create(
                proposal_id, i, asset, stable, config, market_start_time, now, events
            )
            for i, (asset, stable) in enumerate(initial_amounts)
        ]
        escrow = TokenEscrow(state, events)
        for i in range(state.outcome_count):
            escrow.register_supplies(
                i,
                Supply(proposal_id, AssetType.ASSET, i),
                Supply(proposal_id, AssetType.STABLE, i),
            )
        change = escrow.seed_liquidity(initial_amounts, proposer, now)

        proposal = cls(
            proposal_id, proposer, config, state, escrow, pools, events, market_start_time
        )
        events.emit(
            EventType.PROPOSAL_CREATED,
            now,
            actor=proposer,
            outcome_count=state.outcome_count,
            market_start_time=market_start_time,
        )
        proposal._check_invariants()
        logger.info(
            "Proposal created: id=%s outcomes=%d proposer=%s trading_eligible_at=%d",
            proposal_id,
            state.outcome_count,
            proposer,
            market_start_time,
        )
        return proposal, cap, change

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    @contextmanager
    def _atomic(self, *tokens: ConditionalToken) -> Iterator[None]:
        # The event log is shared rather than copied; rollback truncates it.
        memo: dict[int, Any] = {id(self.events): self.events}
        snapshot = copy.deepcopy(self.__dict__, memo)
        token_snapshots = [(t, dict(t.__dict__)) for t in tokens]
        event_count = len(self.events)
        try:
            yield
        except Exception:
            self.__dict__.clear()
            self.__dict__.update(snapshot)
            for token, saved in token_snapshots:
                token.__dict__.clear()
                token.__dict__.update(saved)
            self.events.truncate(event_count)
            raise

    def _check_invariants(self) -> None:
        assert_escrow_invariants(self.escrow, self.pools, self.state)

    def _require_tradable_pools(self) -> None:
        minimum = self.config.minimum_liquidity
        for pool in self.pools:
            asset, stable = pool.get_reserves()
            if asset < minimum or stable < minimum:
                raise InsufficientLiquidityError(
                    f"pool {pool.outcome_index} reserves ({asset}, {stable}) below "
                    f"minimum {minimum}; trading cannot start"
                )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def stage(self) -> ProposalStage:
        return self.state.stage

    def stage_eligible_at(self) -> int | None:
        """Earliest time the next transition may fire; None once finalized."""
        stage = self.state.stage
        if stage == ProposalStage.REVIEW:
            return self.state.created_at + self.config.review_period_ms
        if stage == ProposalStage.TRADING:
            return self.state.get_trading_end()
        if stage == ProposalStage.SETTLEMENT:
            return self.state.get_trading_end()
        return None

    def advance_stage(self, cap: AdminCap, now: int) -> ProposalStage:
        """Fire the next time-eligible transition; exactly one per call."""
        with self._atomic():
            self.state.verify_admin(cap)
            stage = self.state.stage
            if stage == ProposalStage.FINALIZED:
                raise AlreadyFinalizedError()
            eligible_at = self.stage_eligible_at()
            if eligible_at is not None and now < eligible_at:
                raise TooEarlyError(eligible_at, now)

            if stage == ProposalStage.REVIEW:
                self._require_tradable_pools()
                self.state.start_trading(cap, self.config.trading_period_ms, now)
            elif stage == ProposalStage.TRADING:
                self.state.end_trading(cap, self.pools[0].oracle, now)
            else:
                self._finalize(cap, now)
            self._check_invariants()
        return self.state.stage

    def finalize(self, cap: AdminCap, now: int) -> int:
        """Settle on the highest TWAP at now; returns the winning index."""
        with self._atomic():
            winner = self._finalize(cap, now)
            self._check_invariants()
        return winner

    def _finalize(self, cap: AdminCap, now: int) -> int:
        self.state.verify_admin(cap)
        if self.state.finalized:
            raise AlreadyFinalizedError()
        if not self.state.trading_ended:
            raise TradingNotEndedError()
        twaps = self.get_twaps(now)
        winner = select_winner(twaps)
        self.state.finalize(cap, winner, now)
        self.escrow.release_losing_backing(now)
        logger.info(
            "Proposal settled: id=%s twaps=%s winner=%d", self.proposal_id, twaps, winner
        )
        return winner

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def swap_asset_to_stable(
        self, outcome_idx: int, token: ConditionalToken, min_out: int, now: int
    ) -> ConditionalToken:
        return self._swap(SwapDirection.ASSET_TO_STABLE, outcome_idx, token, min_out, now)

    def swap_stable_to_asset(
        self, outcome_idx: int, token: ConditionalToken, min_out: int, now: int
    ) -> ConditionalToken:
        return self._swap(SwapDirection.STABLE_TO_ASSET, outcome_idx, token, min_out, now)

    def _swap(
        self,
        direction: SwapDirection,
        outcome_idx: int,
        token: ConditionalToken,
        min_out: int,
        now: int,
    ) -> ConditionalToken:
        with self._atomic(token):
            self.state.assert_trading_active()
            if now >= self.state.get_trading_end():
                raise TradingAlreadyEndedError()
            self.state.validate_outcome(outcome_idx)
            if direction == SwapDirection.ASSET_TO_STABLE:
                token.ensure_matches(self.proposal_id, AssetType.ASSET, outcome_idx)
            else:
                token.ensure_matches(self.proposal_id, AssetType.STABLE, outcome_idx)

            result = sender = token.owner
            result = self.pools[outcome_idx].swap(
                direction, token.balance, min_out, now, actor=sender
            )
            if direction == SwapDirection.ASSET_TO_STABLE:
                token_out = self.escrow.swap_asset_to_stable_tokens(
                    outcome_idx, token, result.amount_out, sender, now
                )
            else:
                token_out = self.escrow.swap_stable_to_asset_tokens(
                    outcome_idx, token, result.amount_out, sender, now
                )
            self._check_invariants()
        return token_out

    def quote_swap(
        self, outcome_idx: int, direction: SwapDirection, amount_in: int
    ) -> SwapQuote:
        self.state.validate_outcome(outcome_idx)
        return self.pools[outcome_idx].quote_swap(direction, amount_in)

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    def add_liquidity(
        self,
        cap: AdminCap,
        outcome_idx: int,
        asset_token: ConditionalToken,
        stable_token: ConditionalToken,
        now: int,
    ) -> list[ConditionalToken]:
        """Add at the pool ratio; returns whichever input tokens keep a remainder."""
        with self._atomic(asset_token, stable_token):
            self.state.verify_admin(cap)
            self.state.assert_not_finalized()
            if self.state.trading_ended:
                raise TradingAlreadyEndedError()
            self.state.validate_outcome(outcome_idx)
            asset_token.ensure_matches(self.proposal_id, AssetType.ASSET, outcome_idx)
            stable_token.ensure_matches(self.proposal_id, AssetType.STABLE, outcome_idx)

            asset_used, stable_used = self.pools[outcome_idx].add_liquidity(
                asset_token.balance, stable_token.balance, now, actor=asset_token.owner
            )
            self.escrow.deposit_liquidity_tokens(
                outcome_idx, asset_token, stable_token, asset_used, stable_used, now
            )
            self._check_invariants()
        return [t for t in (asset_token, stable_token) if not t.consumed]

    def remove_liquidity(
        self,
        cap: AdminCap,
        outcome_idx: int,
        pct_bps: int,
        min_asset_out: int,
        min_stable_out: int,
        now: int,
        recipient: str | None = None,
    ) -> list[ConditionalToken]:
        """Withdraw pct_bps of one pool as conditional tokens of that outcome."""
        with self._atomic():
            self.state.verify_admin(cap)
            self.state.validate_outcome(outcome_idx)
            recipient = recipient or self.proposer
            # pools may only be drained once trading can no longer start or continue
            asset_out, stable_out = self.pools[outcome_idx].remove_liquidity(
                pct_bps,
                min_asset_out,
                min_stable_out,
                now,
                keep_minimum=not self.state.trading_ended,
                actor=recipient,
            )
            tokens = self.escrow.withdraw_liquidity_tokens(
                outcome_idx, asset_out, stable_out, recipient, now
            )
            self._check_invariants()
        return tokens

    # ------------------------------------------------------------------
    # Collateral
    # ------------------------------------------------------------------

    def mint_complete_set(
        self, asset_type: AssetType, amount: int, recipient: str, now: int
    ) -> list[ConditionalToken]:
        with self._atomic():
            if asset_type == AssetType.ASSET:
                tokens = self.escrow.create_asset_tokens(amount, recipient, now)
            else:
                tokens = self.escrow.create_stable_tokens(amount, recipient, now)
            self._check_invariants()
        return tokens

    def redeem_complete_set(
        self, asset_type: AssetType, tokens: list[ConditionalToken], now: int
    ) -> CollateralBalance:
        with self._atomic(*tokens):
            if asset_type == AssetType.ASSET:
                balance = self.escrow.redeem_complete_set_asset(tokens, now)
            else:
                balance = self.escrow.redeem_complete_set_stable(tokens, now)
            self._check_invariants()
        return balance

    def redeem_winning_tokens(
        self, token: ConditionalToken, now: int
    ) -> CollateralBalance:
        with self._atomic(token):
            if token.asset_type == AssetType.ASSET:
                balance = self.escrow.redeem_winning_tokens_asset(token, now)
            else:
                balance = self.escrow.redeem_winning_tokens_stable(token, now)
            self._check_invariants()
        return balance

    # ------------------------------------------------------------------
    # Token housekeeping
    # ------------------------------------------------------------------

    def split_token(
        self, token: ConditionalToken, amount: int, now: int
    ) -> ConditionalToken:
        with self._atomic(token):
            return self.escrow.split_token(token, amount, now)

    def merge_tokens(
        self, token: ConditionalToken, other: ConditionalToken, now: int
    ) -> ConditionalToken:
        with self._atomic(token, other):
            return self.escrow.merge_tokens(token, other, now)

    def transfer_token(self, token: ConditionalToken, recipient: str, now: int) -> None:
        with self._atomic(token):
            self.escrow.transfer_token(token, recipient, now)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_twaps(self, now: int) -> list[int]:
        return [pool.get_twap(now) for pool in self.pools]

    def get_prices(self) -> list[int | None]:
        """Spot price per outcome; None for a pool drained to zero after trading."""
        return [
            pool.get_current_price() if pool.asset_reserve > 0 else None
            for pool in self.pools
        ]

    def verify_invariants(self) -> list[str]:
        return verify_escrow_invariants(self.escrow, self.pools, self.state)

    def summary(self) -> dict[str, Any]:
        state = self.state
        prices = self.get_prices()
        return {
            "proposal_id": self.proposal_id,
            "proposer": self.proposer,
            "stage": state.stage.name,
            "outcome_count": state.outcome_count,
            "outcome_messages": list(state.outcome_messages),
            "created_at": state.created_at,
            "market_start_time": self.market_start_time,
            "trading_start": state.trading_start,
            "trading_end": state.trading_end,
            "finalization_time": state.finalization_time,
            "winning_outcome": state.winning_outcome,
            "next_transition_at": self.stage_eligible_at(),
            "pools": [
                {
                    "outcome_index": pool.outcome_index,
                    "message": state.outcome_messages[pool.outcome_index],
                    "asset_reserve": pool.asset_reserve,
                    "stable_reserve": pool.stable_reserve,
                    "k": pool.get_k(),
                    "price": prices[pool.outcome_index],
                    "oracle_price": pool.oracle.get_last_price(),
                }
                for pool in self.pools
            ],
            "escrow": {
                "asset_balance": self.escrow.asset_balance,
                "stable_balance": self.escrow.stable_balance,
                "outcome_asset_balances": list(self.escrow.outcome_asset_balances),
                "outcome_stable_balances": list(self.escrow.outcome_stable_balances),
                "total_asset_deposited": self.escrow.total_asset_deposited,
                "total_asset_withdrawn": self.escrow.total_asset_withdrawn,
                "total_stable_deposited": self.escrow.total_stable_deposited,
                "total_stable_withdrawn": self.escrow.total_stable_withdrawn,
            },
        }
