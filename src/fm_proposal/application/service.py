"""ProposalService: in-memory registry with one transaction at a time per proposal.

Each proposal has its own asyncio.Lock, so calls against one proposal are
totally ordered while different proposals proceed independently. The domain
aggregate rolls itself back on failure; the lock only provides ordering.
"""
import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import TypeVar

from config.settings import settings
from src.fm_common.datetime_utils import Clock, now_ms
from src.fm_common.engine_config import EngineConfig, engine_config_from_settings
from src.fm_common.enums import EventType, SwapDirection
from src.fm_common.errors import (
    AppError,
    ProposalAlreadyExistsError,
    ProposalNotFoundError,
)
from src.fm_market.domain.capabilities import AdminCap
from src.fm_proposal.application.schemas import (
    AdvanceStageOut,
    CreateProposalRequest,
    CreateProposalResponse,
    EventOut,
    InvariantReport,
    ProposalListItem,
    ProposalSummary,
    SwapQuoteOut,
    TokenOut,
    TwapsOut,
)
from src.fm_proposal.domain.proposal import Proposal
from src.fm_proposal.domain.settlement import select_winner

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProposalService:
    def __init__(self, config: EngineConfig | None = None, clock: Clock = now_ms) -> None:
        self._config = config or engine_config_from_settings(settings)
        self._clock = clock
        self._proposals: dict[str, Proposal] = {}
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def config(self) -> EngineConfig:
        return self._config

    def _get(self, proposal_id: str) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_proposal(self, req: CreateProposalRequest) -> CreateProposalResponse:
        now = self._clock()
        proposal, cap, change = Proposal.create(
            self._config,
            req.outcome_messages,
            req.seed_pairs(),
            req.proposer,
            now,
            proposal_id=req.proposal_id,
        )
        async with self._locks[proposal.proposal_id]:
            if proposal.proposal_id in self._proposals:
                raise ProposalAlreadyExistsError(proposal.proposal_id)
            self._proposals[proposal.proposal_id] = proposal
        return CreateProposalResponse(
            proposal_id=proposal.proposal_id,
            admin_cap=cap.cap_id,
            stage=proposal.stage.name,
            market_start_time=proposal.market_start_time,
            change_tokens=[TokenOut.from_domain(t) for t in change],
        )

    async def advance_stage(self, proposal_id: str, admin_cap: str) -> AdvanceStageOut:
        proposal = self._get(proposal_id)
        cap = AdminCap(market_id=proposal_id, cap_id=admin_cap)
        async with self._locks[proposal_id]:
            stage = proposal.advance_stage(cap, self._clock())
            return AdvanceStageOut(
                proposal_id=proposal_id,
                stage=stage.name,
                winning_outcome=proposal.state.winning_outcome,
                next_transition_at=proposal.stage_eligible_at(),
            )

    async def execute(
        self, proposal_id: str, operation: Callable[[Proposal, int], T]
    ) -> T:
        """Run operation(proposal, now) as one serialized transaction.

        Entry point for in-process hosts that hold conditional tokens
        themselves (swaps, liquidity, complete sets, redemption).
        """
        proposal = self._get(proposal_id)
        async with self._locks[proposal_id]:
            try:
                return operation(proposal, self._clock())
            except AppError as exc:
                logger.info(
                    "Proposal call rejected: id=%s code=%d %s",
                    proposal_id,
                    exc.code,
                    exc.message,
                )
                raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_proposals(self) -> list[ProposalListItem]:
        return [
            ProposalListItem(
                proposal_id=p.proposal_id,
                stage=p.stage.name,
                outcome_count=p.state.outcome_count,
                created_at=p.state.created_at,
            )
            for p in self._proposals.values()
        ]

    async def get_summary(self, proposal_id: str) -> ProposalSummary:
        proposal = self._get(proposal_id)
        async with self._locks[proposal_id]:
            return ProposalSummary.from_domain(proposal.summary())

    async def quote_swap(
        self, proposal_id: str, outcome_index: int, direction: SwapDirection, amount_in: int
    ) -> SwapQuoteOut:
        proposal = self._get(proposal_id)
        async with self._locks[proposal_id]:
            quote = proposal.quote_swap(outcome_index, direction, amount_in)
        return SwapQuoteOut.from_domain(outcome_index, quote)

    async def get_twaps(self, proposal_id: str) -> TwapsOut:
        proposal = self._get(proposal_id)
        now = self._clock()
        async with self._locks[proposal_id]:
            twaps = proposal.get_twaps(now)
        return TwapsOut(
            proposal_id=proposal_id,
            timestamp=now,
            twaps=twaps,
            leading_outcome=select_winner(twaps),
        )

    async def list_events(
        self, proposal_id: str, event_type: EventType | None = None, since: int = 0
    ) -> list[EventOut]:
        proposal = self._get(proposal_id)
        async with self._locks[proposal_id]:
            events = proposal.events.query(event_type, since)
        return [EventOut.from_domain(e) for e in events]

    async def verify_invariants(self, proposal_id: str) -> InvariantReport:
        proposal = self._get(proposal_id)
        async with self._locks[proposal_id]:
            violations = proposal.verify_invariants()
        return InvariantReport(
            proposal_id=proposal_id, ok=not violations, violations=violations
        )
