"""Pydantic schemas for fm_proposal API requests and responses.

Amounts and prices are integers in base units / basis points, exactly as the
engine holds them; no display conversion happens here.
"""

from typing import Any

from pydantic import BaseModel, Field

from src.fm_amm.domain.models import SwapQuote
from src.fm_common.math import U64_MAX
from src.fm_escrow.domain.tokens import ConditionalToken
from src.fm_events.domain.models import MarketEvent

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class OutcomeSeed(BaseModel):
    asset_amount: int = Field(..., ge=0, le=U64_MAX)
    stable_amount: int = Field(..., ge=0, le=U64_MAX)


class CreateProposalRequest(BaseModel):
    proposer: str = Field(..., min_length=1, max_length=128)
    outcome_messages: list[str] = Field(..., min_length=1)
    initial_amounts: list[OutcomeSeed] = Field(..., min_length=1)
    proposal_id: str | None = Field(None, min_length=1, max_length=64)

    def seed_pairs(self) -> list[tuple[int, int]]:
        return [(s.asset_amount, s.stable_amount) for s in self.initial_amounts]


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TokenOut(BaseModel):
    market_id: str
    asset_type: str
    outcome_index: int
    balance: int
    owner: str

    @classmethod
    def from_domain(cls, token: ConditionalToken) -> "TokenOut":
        return cls(
            market_id=token.market_id,
            asset_type=token.asset_type.value,
            outcome_index=token.outcome_index,
            balance=token.balance,
            owner=token.owner,
        )


class CreateProposalResponse(BaseModel):
    proposal_id: str
    admin_cap: str  # secret; present it as X-Admin-Cap to advance stages
    stage: str
    market_start_time: int
    change_tokens: list[TokenOut]


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


class PoolOut(BaseModel):
    outcome_index: int
    message: str
    asset_reserve: int
    stable_reserve: int
    k: int
    price: int | None
    oracle_price: int


class EscrowOut(BaseModel):
    asset_balance: int
    stable_balance: int
    outcome_asset_balances: list[int]
    outcome_stable_balances: list[int]
    total_asset_deposited: int
    total_asset_withdrawn: int
    total_stable_deposited: int
    total_stable_withdrawn: int


class ProposalSummary(BaseModel):
    proposal_id: str
    proposer: str
    stage: str
    outcome_count: int
    outcome_messages: list[str]
    created_at: int
    market_start_time: int
    trading_start: int | None
    trading_end: int | None
    finalization_time: int | None
    winning_outcome: int | None
    next_transition_at: int | None
    pools: list[PoolOut]
    escrow: EscrowOut

    @classmethod
    def from_domain(cls, summary: dict[str, Any]) -> "ProposalSummary":
        return cls.model_validate(summary)


class ProposalListItem(BaseModel):
    proposal_id: str
    stage: str
    outcome_count: int
    created_at: int


# ---------------------------------------------------------------------------
# Quotes, TWAPs, lifecycle
# ---------------------------------------------------------------------------


class SwapQuoteOut(BaseModel):
    outcome_index: int
    direction: str
    amount_in: int
    fee: int
    amount_out: int
    price_impact_bps: int
    price_before: int
    price_after: int

    @classmethod
    def from_domain(cls, outcome_index: int, quote: SwapQuote) -> "SwapQuoteOut":
        return cls(
            outcome_index=outcome_index,
            direction=quote.direction.value,
            amount_in=quote.amount_in,
            fee=quote.fee,
            amount_out=quote.amount_out,
            price_impact_bps=quote.price_impact_bps,
            price_before=quote.price_before,
            price_after=quote.price_after,
        )


class TwapsOut(BaseModel):
    proposal_id: str
    timestamp: int
    twaps: list[int]
    leading_outcome: int


class AdvanceStageOut(BaseModel):
    proposal_id: str
    stage: str
    winning_outcome: int | None
    next_transition_at: int | None


class EventOut(BaseModel):
    sequence: int
    event_type: str
    market_id: str
    timestamp: int
    actor: str | None
    outcome_index: int | None
    price: int | None
    amounts: dict[str, int]

    @classmethod
    def from_domain(cls, event: MarketEvent) -> "EventOut":
        return cls.model_validate(event.to_dict())


class InvariantReport(BaseModel):
    proposal_id: str
    ok: bool
    violations: list[str]
