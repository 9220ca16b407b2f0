"""Conditional tokens, their supplies, and withdrawable collateral.

Tokens behave like linear values: a burned or merged-away token is consumed and
rejects every later use. Supplies only mint or burn for the TokenManagerCap they
were bound to at registration, which belongs to the escrow, so tokens can only
come into existence against an escrow balance move.
"""

from dataclasses import dataclass

from src.fm_common.enums import AssetType
from src.fm_common.errors import (
    ArithmeticOverflowError,
    InsufficientTokenBalanceError,
    TokenConsumedError,
    UnauthorizedError,
    WrongMarketError,
    WrongOutcomeError,
    WrongTokenTypeError,
    ZeroAmountError,
)
from src.fm_common.math import U64_MAX, validate_amount
from src.fm_market.domain.capabilities import TokenManagerCap, verify_capability


@dataclass
class ConditionalToken:
    market_id: str
    asset_type: AssetType
    outcome_index: int
    balance: int
    owner: str
    consumed: bool = False

    def ensure_live(self) -> None:
        if self.consumed:
            raise TokenConsumedError()

    def ensure_matches(
        self, market_id: str, asset_type: AssetType, outcome_index: int | None = None
    ) -> None:
        """Raise unless this live token belongs to the given market/type/outcome."""
        self.ensure_live()
        if self.market_id != market_id:
            raise WrongMarketError(market_id, self.market_id)
        if self.asset_type != asset_type:
            raise WrongTokenTypeError(asset_type.value, self.asset_type.value)
        if outcome_index is not None and self.outcome_index != outcome_index:
            raise WrongOutcomeError(outcome_index, self.outcome_index)

    def split(self, amount: int) -> "ConditionalToken":
        """Carve amount off into a new token with the same identity and owner."""
        self.ensure_live()
        validate_amount(amount)
        if amount == 0:
            raise ZeroAmountError("split amount")
        if amount > self.balance:
            raise InsufficientTokenBalanceError(amount, self.balance)
        self.balance -= amount
        return ConditionalToken(
            market_id=self.market_id,
            asset_type=self.asset_type,
            outcome_index=self.outcome_index,
            balance=amount,
            owner=self.owner,
        )

    def join(self, other: "ConditionalToken") -> None:
        """Absorb other into self; other is consumed."""
        if other is self:
            raise TokenConsumedError()
        other.ensure_live()
        self.ensure_matches(other.market_id, other.asset_type, other.outcome_index)
        self.balance += other.balance
        other.balance = 0
        other.consumed = True

    def transfer(self, recipient: str) -> None:
        self.ensure_live()
        self.owner = recipient


@dataclass
class Supply:
    """Minted-minus-burned total for one (market, asset_type, outcome) triple."""

    market_id: str
    asset_type: AssetType
    outcome_index: int
    total_supply: int = 0
    manager_cap_id: str | None = None

    def bind(self, cap: TokenManagerCap) -> None:
        if cap.market_id != self.market_id:
            raise WrongMarketError(self.market_id, cap.market_id)
        if self.manager_cap_id is not None:
            raise UnauthorizedError("supply is already bound to a token manager")
        self.manager_cap_id = cap.cap_id

    def _verify(self, cap: TokenManagerCap) -> None:
        if self.manager_cap_id is None:
            raise UnauthorizedError("supply is not registered with an escrow")
        verify_capability(cap, self.market_id, self.manager_cap_id)

    def mint(self, cap: TokenManagerCap, amount: int, owner: str) -> ConditionalToken:
        self._verify(cap)
        validate_amount(amount)
        if amount == 0:
            raise ZeroAmountError("mint amount")
        if self.total_supply + amount > U64_MAX:
            raise ArithmeticOverflowError("conditional token supply exceeds u64")
        self.total_supply += amount
        return ConditionalToken(
            market_id=self.market_id,
            asset_type=self.asset_type,
            outcome_index=self.outcome_index,
            balance=amount,
            owner=owner,
        )

    def burn(self, cap: TokenManagerCap, token: ConditionalToken) -> int:
        """Destroy token; returns the burned amount."""
        self._verify(cap)
        token.ensure_matches(self.market_id, self.asset_type, self.outcome_index)
        amount = token.balance
        self.total_supply -= amount
        token.balance = 0
        token.consumed = True
        return amount


@dataclass(frozen=True)
class CollateralBalance:
    """Unconditional collateral released from the escrow to a caller."""

    market_id: str
    asset_type: AssetType
    amount: int
