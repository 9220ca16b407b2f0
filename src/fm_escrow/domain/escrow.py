"""Escrow ledger: a main collateral balance plus per-outcome sub-balances.

The sub-balances back the outstanding conditional tokens one for one. Minting a
token moves its amount from the main balance into that outcome's sub-balance;
burning moves it back. Only deposits and withdrawals change the total:

    asset_balance + sum(outcome_asset_balances) == total_asset_deposited - total_asset_withdrawn
    outcome_asset_balances[i] == asset_supplies[i].total_supply

and symmetrically for stable. Pool reserves are not held in sub-balances; they
are the part of the main balance no token has claimed. A move that would take
the main balance below zero aborts with InsufficientLiquidityError.
"""
import logging

from src.fm_common.enums import AssetType, EventType
from src.fm_common.errors import (
    AlreadyStartedError,
    InsufficientLiquidityError,
    InsufficientTokenBalanceError,
    InvalidOutcomeIndexError,
    InvariantViolationError,
    MismatchedAmountsError,
    OutcomeCountMismatchError,
    OutOfSequenceError,
    SuppliesNotRegisteredError,
    WrongMarketError,
    WrongOutcomeError,
    WrongTokenTypeError,
    ZeroAmountError,
)
from src.fm_common.math import U64_MAX, validate_amount
from src.fm_events.infrastructure.event_log import EventLog
from src.fm_escrow.domain.tokens import CollateralBalance, ConditionalToken, Supply
from src.fm_market.domain.capabilities import TokenManagerCap
from src.fm_market.domain.state import MarketState

logger = logging.getLogger(__name__)


class TokenEscrow:
    def __init__(self, market_state: MarketState, events: EventLog) -> None:
        n = market_state.outcome_count
        self.market_id = market_state.market_id
        self.market_state = market_state
        self.asset_balance = 0
        self.stable_balance = 0
        self.outcome_asset_balances: list[int] = [0] * n
        self.outcome_stable_balances: list[int] = [0] * n
        self.asset_supplies: list[Supply] = []
        self.stable_supplies: list[Supply] = []
        self.total_asset_deposited = 0
        self.total_asset_withdrawn = 0
        self.total_stable_deposited = 0
        self.total_stable_withdrawn = 0
        self._manager_cap = TokenManagerCap(market_id=self.market_id)
        self._events = events

    @property
    def outcome_count(self) -> int:
        return self.market_state.outcome_count

    # ------------------------------------------------------------------
    # Supply registration
    # ------------------------------------------------------------------

    def register_supplies(
        self, outcome_idx: int, asset_supply: Supply, stable_supply: Supply
    ) -> None:
        """Register one outcome's supplies; outcomes must arrive as 0, 1, ..., N-1."""
        if not (0 <= outcome_idx < self.outcome_count):
            raise InvalidOutcomeIndexError(outcome_idx, self.outcome_count)
        expected = len(self.asset_supplies)
        if outcome_idx != expected:
            raise OutOfSequenceError(expected, outcome_idx)
        for supply, asset_type in (
            (asset_supply, AssetType.ASSET),
            (stable_supply, AssetType.STABLE),
        ):
            if supply.market_id != self.market_id:
                raise WrongMarketError(self.market_id, supply.market_id)
            if supply.asset_type != asset_type:
                raise WrongTokenTypeError(asset_type.value, supply.asset_type.value)
            if supply.outcome_index != outcome_idx:
                raise WrongOutcomeError(outcome_idx, supply.outcome_index)
        asset_supply.bind(self._manager_cap)
        stable_supply.bind(self._manager_cap)
        self.asset_supplies.append(asset_supply)
        self.stable_supplies.append(stable_supply)

    def all_supplies_registered(self) -> bool:
        return len(self.asset_supplies) == self.outcome_count

    def _require_registered(self) -> None:
        if not self.all_supplies_registered():
            raise SuppliesNotRegisteredError(len(self.asset_supplies), self.outcome_count)

    def _check_outcome(self, outcome_idx: int) -> None:
        if not (0 <= outcome_idx < self.outcome_count):
            raise InvalidOutcomeIndexError(outcome_idx, self.outcome_count)
        if outcome_idx >= len(self.asset_supplies):
            raise SuppliesNotRegisteredError(len(self.asset_supplies), self.outcome_count)

    def get_supply(self, asset_type: AssetType, outcome_idx: int) -> Supply:
        self._check_outcome(outcome_idx)
        supplies = self.asset_supplies if asset_type == AssetType.ASSET else self.stable_supplies
        return supplies[outcome_idx]

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def sub_balances(self, asset_type: AssetType) -> list[int]:
        if asset_type == AssetType.ASSET:
            return self.outcome_asset_balances
        return self.outcome_stable_balances

    def main_balance(self, asset_type: AssetType) -> int:
        return self.asset_balance if asset_type == AssetType.ASSET else self.stable_balance

    def _set_main(self, asset_type: AssetType, value: int) -> None:
        if asset_type == AssetType.ASSET:
            self.asset_balance = value
        else:
            self.stable_balance = value

    def net_deposited(self, asset_type: AssetType) -> int:
        """Collateral deposited minus collateral withdrawn."""
        if asset_type == AssetType.ASSET:
            return self.total_asset_deposited - self.total_asset_withdrawn
        return self.total_stable_deposited - self.total_stable_withdrawn

    def _require_main(self, asset_type: AssetType, amount: int) -> None:
        available = self.main_balance(asset_type)
        if amount > available:
            raise InsufficientLiquidityError(
                f"escrow main {asset_type.value} balance {available}, need {amount}"
            )

    # ------------------------------------------------------------------
    # Primitives: every token mint/burn is paired with a main <-> sub move
    # ------------------------------------------------------------------

    def _deposit(self, asset_type: AssetType, amount: int, actor: str, now: int) -> None:
        if self.net_deposited(asset_type) + amount > U64_MAX:
            raise InsufficientLiquidityError(
                f"{asset_type.value} collateral would exceed u64"
            )
        self._set_main(asset_type, self.main_balance(asset_type) + amount)
        if asset_type == AssetType.ASSET:
            self.total_asset_deposited += amount
        else:
            self.total_stable_deposited += amount
        self._events.emit(
            EventType.COLLATERAL_DEPOSITED,
            now,
            actor=actor,
            **{f"{asset_type.value.lower()}_amount": amount},
        )

    def _withdraw(
        self, asset_type: AssetType, amount: int, actor: str, now: int
    ) -> CollateralBalance:
        if amount > self.main_balance(asset_type):
            raise InvariantViolationError(
                [f"withdrawal of {amount} exceeds main {asset_type.value} balance "
                 f"{self.main_balance(asset_type)}"]
            )
        self._set_main(asset_type, self.main_balance(asset_type) - amount)
        if asset_type == AssetType.ASSET:
            self.total_asset_withdrawn += amount
        else:
            self.total_stable_withdrawn += amount
        self._events.emit(
            EventType.COLLATERAL_WITHDRAWN,
            now,
            actor=actor,
            **{f"{asset_type.value.lower()}_amount": amount},
        )
        return CollateralBalance(self.market_id, asset_type, amount)

    def _mint(
        self, asset_type: AssetType, outcome_idx: int, amount: int, owner: str, now: int
    ) -> ConditionalToken:
        """Move amount from main into the outcome's sub-balance and mint it."""
        supply = self.get_supply(asset_type, outcome_idx)
        self._require_main(asset_type, amount)
        token = supply.mint(self._manager_cap, amount, owner)
        self._set_main(asset_type, self.main_balance(asset_type) - amount)
        self.sub_balances(asset_type)[outcome_idx] += amount
        self._events.emit(
            EventType.TOKEN_MINTED,
            now,
            actor=owner,
            outcome_index=outcome_idx,
            **{f"{asset_type.value.lower()}_amount": amount},
        )
        return token

    def _burn(
        self, asset_type: AssetType, outcome_idx: int, token: ConditionalToken, now: int
    ) -> int:
        """Burn token and return its backing from the outcome's sub-balance to main."""
        supply = self.get_supply(asset_type, outcome_idx)
        subs = self.sub_balances(asset_type)
        if token.balance > subs[outcome_idx]:
            raise InvariantViolationError(
                [f"outcome {outcome_idx} {asset_type.value} sub-balance "
                 f"{subs[outcome_idx]} cannot back a burn of {token.balance}"]
            )
        owner = token.owner
        amount = supply.burn(self._manager_cap, token)
        subs[outcome_idx] -= amount
        self._set_main(asset_type, self.main_balance(asset_type) + amount)
        self._events.emit(
            EventType.TOKEN_BURNED,
            now,
            actor=owner,
            outcome_index=outcome_idx,
            **{f"{asset_type.value.lower()}_amount": amount},
        )
        return amount

    # ------------------------------------------------------------------
    # Initial liquidity
    # ------------------------------------------------------------------

    def seed_liquidity(
        self, amounts: list[tuple[int, int]], proposer: str, now: int
    ) -> list[ConditionalToken]:
        """Fund every outcome pool from one deposit.

        The deposit is the largest per-outcome amount of each type. An outcome
        seeded with less gets the difference minted to the proposer as tokens,
        so every outcome's reserves plus tokens equal the deposit.
        """
        self._require_registered()
        if len(amounts) != self.outcome_count:
            raise OutcomeCountMismatchError(self.outcome_count, len(amounts))
        if self.total_asset_deposited or self.total_stable_deposited:
            raise AlreadyStartedError()
        for asset_amount, stable_amount in amounts:
            validate_amount(asset_amount)
            validate_amount(stable_amount)

        max_asset = max(a for a, _ in amounts)
        max_stable = max(s for _, s in amounts)
        asset_change = [max_asset - a for a, _ in amounts]
        stable_change = [max_stable - s for _, s in amounts]
        if sum(asset_change) > max_asset or sum(stable_change) > max_stable:
            raise InsufficientLiquidityError(
                "seed amounts too uneven: change tokens would exceed the deposit"
            )

        self._deposit(AssetType.ASSET, max_asset, proposer, now)
        self._deposit(AssetType.STABLE, max_stable, proposer, now)
        change: list[ConditionalToken] = []
        for i in range(self.outcome_count):
            if asset_change[i]:
                change.append(self._mint(AssetType.ASSET, i, asset_change[i], proposer, now))
            if stable_change[i]:
                change.append(self._mint(AssetType.STABLE, i, stable_change[i], proposer, now))
        return change

    # ------------------------------------------------------------------
    # Complete sets
    # ------------------------------------------------------------------

    def _create_complete_set(
        self, asset_type: AssetType, amount: int, recipient: str, now: int
    ) -> list[ConditionalToken]:
        self.market_state.assert_trading_active()
        self._require_registered()
        validate_amount(amount)
        if amount == 0:
            raise ZeroAmountError()
        needed = amount * self.outcome_count
        self._require_main(asset_type, needed - amount)
        self._deposit(asset_type, amount, recipient, now)
        return [
            self._mint(asset_type, i, amount, recipient, now)
            for i in range(self.outcome_count)
        ]

    def create_asset_tokens(
        self, amount: int, recipient: str, now: int
    ) -> list[ConditionalToken]:
        """Deposit amount of asset and mint it for every outcome."""
        return self._create_complete_set(AssetType.ASSET, amount, recipient, now)

    def create_stable_tokens(
        self, amount: int, recipient: str, now: int
    ) -> list[ConditionalToken]:
        return self._create_complete_set(AssetType.STABLE, amount, recipient, now)

    def _redeem_complete_set(
        self, asset_type: AssetType, tokens: list[ConditionalToken], now: int
    ) -> CollateralBalance:
        self.market_state.assert_not_finalized()
        self._require_registered()
        if len(tokens) != self.outcome_count:
            raise OutcomeCountMismatchError(self.outcome_count, len(tokens))
        for i, token in enumerate(tokens):
            token.ensure_matches(self.market_id, asset_type, i)
        amounts = [t.balance for t in tokens]
        if len(set(amounts)) != 1:
            raise MismatchedAmountsError(amounts)
        amount = amounts[0]
        if amount == 0:
            raise ZeroAmountError()
        owner = tokens[0].owner
        for i, token in enumerate(tokens):
            self._burn(asset_type, i, token, now)
        return self._withdraw(asset_type, amount, owner, now)

    def redeem_complete_set_asset(
        self, tokens: list[ConditionalToken], now: int
    ) -> CollateralBalance:
        return self._redeem_complete_set(AssetType.ASSET, tokens, now)

    def redeem_complete_set_stable(
        self, tokens: list[ConditionalToken], now: int
    ) -> CollateralBalance:
        return self._redeem_complete_set(AssetType.STABLE, tokens, now)

    # ------------------------------------------------------------------
    # Settlement and winner redemption
    # ------------------------------------------------------------------

    def release_losing_backing(self, now: int) -> None:
        """Return every losing outcome's sub-balances to main after finalization.

        Losing tokens can never be redeemed, so their backing becomes part of
        the collateral the winning outcome's pool and tokens draw on.
        """
        self.market_state.assert_finalized()
        winner = self.market_state.get_winning_outcome()
        for asset_type in (AssetType.ASSET, AssetType.STABLE):
            subs = self.sub_balances(asset_type)
            released = sum(b for i, b in enumerate(subs) if i != winner)
            for i in range(self.outcome_count):
                if i != winner:
                    subs[i] = 0
            self._set_main(asset_type, self.main_balance(asset_type) + released)
            if released:
                logger.info(
                    "Released losing %s backing: market=%s amount=%d at=%d",
                    asset_type.value,
                    self.market_id,
                    released,
                    now,
                )

    def _redeem_winning(
        self, asset_type: AssetType, token: ConditionalToken, now: int
    ) -> CollateralBalance:
        self.market_state.assert_finalized()
        winner = self.market_state.get_winning_outcome()
        token.ensure_matches(self.market_id, asset_type)
        if token.outcome_index != winner:
            raise WrongOutcomeError(winner, token.outcome_index)
        if token.balance == 0:
            raise ZeroAmountError()
        owner = token.owner
        amount = self._burn(asset_type, winner, token, now)
        return self._withdraw(asset_type, amount, owner, now)

    def redeem_winning_tokens_asset(
        self, token: ConditionalToken, now: int
    ) -> CollateralBalance:
        return self._redeem_winning(AssetType.ASSET, token, now)

    def redeem_winning_tokens_stable(
        self, token: ConditionalToken, now: int
    ) -> CollateralBalance:
        return self._redeem_winning(AssetType.STABLE, token, now)

    # ------------------------------------------------------------------
    # Swaps: realize the pool's burn/mint for one outcome
    # ------------------------------------------------------------------

    def _swap_tokens(
        self,
        in_type: AssetType,
        out_type: AssetType,
        outcome_idx: int,
        token_in: ConditionalToken,
        amount_out: int,
        sender: str,
        now: int,
    ) -> ConditionalToken:
        self.market_state.assert_trading_active()
        self._check_outcome(outcome_idx)
        token_in.ensure_matches(self.market_id, in_type, outcome_idx)
        validate_amount(amount_out)
        if amount_out == 0:
            raise ZeroAmountError("amount_out")
        self._require_main(out_type, amount_out)
        self._burn(in_type, outcome_idx, token_in, now)
        return self._mint(out_type, outcome_idx, amount_out, sender, now)

    def swap_asset_to_stable_tokens(
        self,
        outcome_idx: int,
        token_in: ConditionalToken,
        amount_out: int,
        sender: str,
        now: int,
    ) -> ConditionalToken:
        return self._swap_tokens(
            AssetType.ASSET, AssetType.STABLE, outcome_idx, token_in, amount_out, sender, now
        )

    def swap_stable_to_asset_tokens(
        self,
        outcome_idx: int,
        token_in: ConditionalToken,
        amount_out: int,
        sender: str,
        now: int,
    ) -> ConditionalToken:
        return self._swap_tokens(
            AssetType.STABLE, AssetType.ASSET, outcome_idx, token_in, amount_out, sender, now
        )

    # ------------------------------------------------------------------
    # Liquidity: tokens in and out of one outcome's pool
    # ------------------------------------------------------------------

    def _take(
        self,
        asset_type: AssetType,
        outcome_idx: int,
        token: ConditionalToken,
        amount: int,
        now: int,
    ) -> None:
        portion = token if amount == token.balance else token.split(amount)
        self._burn(asset_type, outcome_idx, portion, now)

    def deposit_liquidity_tokens(
        self,
        outcome_idx: int,
        asset_token: ConditionalToken,
        stable_token: ConditionalToken,
        asset_used: int,
        stable_used: int,
        now: int,
    ) -> None:
        """Burn the used parts of both tokens; their backing returns to main.

        Unused remainders stay on the caller's tokens.
        """
        self.market_state.assert_not_finalized()
        self._check_outcome(outcome_idx)
        asset_token.ensure_matches(self.market_id, AssetType.ASSET, outcome_idx)
        stable_token.ensure_matches(self.market_id, AssetType.STABLE, outcome_idx)
        if asset_used == 0 or stable_used == 0:
            raise ZeroAmountError("liquidity amount")
        if asset_used > asset_token.balance:
            raise InsufficientTokenBalanceError(asset_used, asset_token.balance)
        if stable_used > stable_token.balance:
            raise InsufficientTokenBalanceError(stable_used, stable_token.balance)
        self._take(AssetType.ASSET, outcome_idx, asset_token, asset_used, now)
        self._take(AssetType.STABLE, outcome_idx, stable_token, stable_used, now)

    def withdraw_liquidity_tokens(
        self,
        outcome_idx: int,
        asset_out: int,
        stable_out: int,
        recipient: str,
        now: int,
    ) -> list[ConditionalToken]:
        """Mint one outcome's withdrawn reserves as conditional tokens.

        After finalization only the winning outcome's pool can be withdrawn.
        """
        self._check_outcome(outcome_idx)
        state = self.market_state
        if state.finalized and outcome_idx != state.get_winning_outcome():
            raise WrongOutcomeError(state.get_winning_outcome(), outcome_idx)
        self._require_main(AssetType.ASSET, asset_out)
        self._require_main(AssetType.STABLE, stable_out)
        tokens: list[ConditionalToken] = []
        if asset_out > 0:
            tokens.append(self._mint(AssetType.ASSET, outcome_idx, asset_out, recipient, now))
        if stable_out > 0:
            tokens.append(self._mint(AssetType.STABLE, outcome_idx, stable_out, recipient, now))
        return tokens

    # ------------------------------------------------------------------
    # Token housekeeping
    # ------------------------------------------------------------------

    def split_token(
        self, token: ConditionalToken, amount: int, now: int
    ) -> ConditionalToken:
        if token.market_id != self.market_id:
            raise WrongMarketError(self.market_id, token.market_id)
        part = token.split(amount)
        self._events.emit(
            EventType.TOKEN_SPLIT,
            now,
            actor=token.owner,
            outcome_index=token.outcome_index,
            amount=amount,
            remaining=token.balance,
        )
        return part

    def merge_tokens(
        self, token: ConditionalToken, other: ConditionalToken, now: int
    ) -> ConditionalToken:
        if token.market_id != self.market_id:
            raise WrongMarketError(self.market_id, token.market_id)
        merged = other.balance
        token.join(other)
        self._events.emit(
            EventType.TOKEN_MERGED,
            now,
            actor=token.owner,
            outcome_index=token.outcome_index,
            amount=merged,
            balance=token.balance,
        )
        return token

    def transfer_token(self, token: ConditionalToken, recipient: str, now: int) -> None:
        if token.market_id != self.market_id:
            raise WrongMarketError(self.market_id, token.market_id)
        sender = token.owner
        token.transfer(recipient)
        self._events.emit(
            EventType.TOKEN_TRANSFERRED,
            now,
            actor=sender,
            outcome_index=token.outcome_index,
            amount=token.balance,
        )
        logger.debug(
            "token transfer market=%s outcome=%d %s -> %s",
            self.market_id,
            token.outcome_index,
            sender,
            recipient,
        )
