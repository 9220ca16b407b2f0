"""Tests for conditional tokens and supplies."""

import pytest

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
from src.fm_common.math import U64_MAX
from src.fm_escrow.domain.tokens import ConditionalToken, Supply
from src.fm_market.domain.capabilities import TokenManagerCap


@pytest.fixture
def cap() -> TokenManagerCap:
    return TokenManagerCap(market_id="mkt-1")


@pytest.fixture
def supply(cap: TokenManagerCap) -> Supply:
    s = Supply("mkt-1", AssetType.ASSET, 0)
    s.bind(cap)
    return s


class TestSupply:
    def test_mint_and_burn(self, supply: Supply, cap: TokenManagerCap) -> None:
        token = supply.mint(cap, 100, "alice")
        assert (token.balance, token.owner, token.outcome_index) == (100, "alice", 0)
        assert supply.total_supply == 100
        assert supply.burn(cap, token) == 100
        assert supply.total_supply == 0
        assert token.consumed

    def test_unbound_supply_refuses(self, cap: TokenManagerCap) -> None:
        with pytest.raises(UnauthorizedError):
            Supply("mkt-1", AssetType.ASSET, 0).mint(cap, 1, "alice")

    def test_other_manager_refused(self, supply: Supply) -> None:
        with pytest.raises(UnauthorizedError):
            supply.mint(TokenManagerCap(market_id="mkt-1"), 1, "alice")

    def test_bind_once(self, supply: Supply, cap: TokenManagerCap) -> None:
        with pytest.raises(UnauthorizedError):
            supply.bind(cap)

    def test_bind_other_market(self, cap: TokenManagerCap) -> None:
        with pytest.raises(WrongMarketError):
            Supply("mkt-2", AssetType.ASSET, 0).bind(cap)

    def test_zero_mint(self, supply: Supply, cap: TokenManagerCap) -> None:
        with pytest.raises(ZeroAmountError):
            supply.mint(cap, 0, "alice")

    def test_supply_overflow(self, supply: Supply, cap: TokenManagerCap) -> None:
        supply.mint(cap, U64_MAX, "alice")
        with pytest.raises(ArithmeticOverflowError):
            supply.mint(cap, 1, "alice")

    def test_burn_wrong_outcome(self, supply: Supply, cap: TokenManagerCap) -> None:
        other = ConditionalToken("mkt-1", AssetType.ASSET, 1, 5, "alice")
        with pytest.raises(WrongOutcomeError):
            supply.burn(cap, other)

    def test_burn_consumed(self, supply: Supply, cap: TokenManagerCap) -> None:
        token = supply.mint(cap, 10, "alice")
        supply.burn(cap, token)
        with pytest.raises(TokenConsumedError):
            supply.burn(cap, token)
        assert supply.total_supply == 0


class TestConditionalToken:
    def _token(self, balance: int = 100, **kwargs: object) -> ConditionalToken:
        fields: dict[str, object] = {
            "market_id": "mkt-1",
            "asset_type": AssetType.STABLE,
            "outcome_index": 1,
            "balance": balance,
            "owner": "alice",
        }
        fields.update(kwargs)
        return ConditionalToken(**fields)  # type: ignore[arg-type]

    def test_split(self) -> None:
        token = self._token()
        part = token.split(30)
        assert (token.balance, part.balance) == (70, 30)
        assert part.owner == "alice"
        assert part.outcome_index == 1

    def test_split_too_much(self) -> None:
        with pytest.raises(InsufficientTokenBalanceError):
            self._token().split(101)

    def test_split_zero(self) -> None:
        with pytest.raises(ZeroAmountError):
            self._token().split(0)

    def test_join(self) -> None:
        a, b = self._token(10), self._token(5)
        a.join(b)
        assert a.balance == 15
        assert b.consumed and b.balance == 0
        with pytest.raises(TokenConsumedError):
            b.split(1)

    def test_join_self(self) -> None:
        a = self._token()
        with pytest.raises(TokenConsumedError):
            a.join(a)

    @pytest.mark.parametrize(
        "other_fields, error",
        [
            ({"market_id": "mkt-2"}, WrongMarketError),
            ({"asset_type": AssetType.ASSET}, WrongTokenTypeError),
            ({"outcome_index": 0}, WrongOutcomeError),
        ],
    )
    def test_join_mismatch(self, other_fields: dict[str, object], error: type) -> None:
        a = self._token(10)
        b = self._token(5, **other_fields)
        with pytest.raises(error):
            a.join(b)
        assert (a.balance, b.balance) == (10, 5)

    def test_transfer(self) -> None:
        token = self._token()
        token.transfer("bob")
        assert token.owner == "bob"
