"""Lifecycle state shared by every pool of one proposal.

Status flags only ever move forward:
    created -> trading_started -> trading_ended -> finalized
and winning_outcome is set exactly once, together with finalized.
"""
import logging

from src.fm_common.enums import EventType, ProposalStage
from src.fm_common.errors import (
    AlreadyFinalizedError,
    AlreadyStartedError,
    InvalidOutcomeCountError,
    InvalidOutcomeIndexError,
    NotFinalizedError,
    OutcomeCountMismatchError,
    TradingAlreadyEndedError,
    TradingNotEndedError,
    TradingNotStartedError,
    WrongMarketError,
    ZeroAmountError,
)
from src.fm_events.infrastructure.event_log import EventLog
from src.fm_market.domain.capabilities import AdminCap, verify_capability
from src.fm_oracle.domain.oracle import Oracle

logger = logging.getLogger(__name__)


class MarketState:
    def __init__(
        self,
        market_id: str,
        outcome_messages: list[str],
        created_at: int,
        admin_cap_id: str,
        events: EventLog,
        admin: str | None = None,
    ) -> None:
        self.market_id = market_id
        self.outcome_count = len(outcome_messages)
        self.outcome_messages = list(outcome_messages)
        self.created_at = created_at
        self.trading_started = False
        self.trading_ended = False
        self.finalized = False
        self.winning_outcome: int | None = None
        self.trading_start: int | None = None
        self.trading_end: int | None = None
        self.finalization_time: int | None = None
        self._admin_cap_id = admin_cap_id
        self.admin = admin
        self._events = events

    @classmethod
    def create(
        cls,
        market_id: str,
        outcome_messages: list[str],
        outcome_count: int,
        now: int,
        events: EventLog,
        min_outcomes: int = 2,
        max_outcomes: int = 10,
        admin: str | None = None,
    ) -> tuple["MarketState", AdminCap]:
        if len(outcome_messages) != outcome_count:
            raise OutcomeCountMismatchError(outcome_count, len(outcome_messages))
        if not (min_outcomes <= outcome_count <= max_outcomes):
            raise InvalidOutcomeCountError(outcome_count, min_outcomes, max_outcomes)
        cap = AdminCap(market_id=market_id)
        return cls(market_id, outcome_messages, now, cap.cap_id, events, admin), cap

    # ------------------------------------------------------------------
    # Admin transitions
    # ------------------------------------------------------------------

    def verify_admin(self, cap: AdminCap) -> None:
        verify_capability(cap, self.market_id, self._admin_cap_id)

    def start_trading(self, cap: AdminCap, duration: int, now: int) -> None:
        self.verify_admin(cap)
        if self.trading_started:
            raise AlreadyStartedError()
        if duration <= 0:
            raise ZeroAmountError("trading duration")
        self.trading_started = True
        self.trading_start = now
        self.trading_end = now + duration
        self._events.emit(
            EventType.TRADING_STARTED, now, actor=self.admin, trading_end=self.trading_end
        )
        logger.info(
            "Trading started: market=%s start=%d end=%d", self.market_id, now, self.trading_end
        )

    def end_trading(self, cap: AdminCap, oracle: Oracle, now: int) -> None:
        self.verify_admin(cap)
        if not self.trading_started:
            raise TradingNotStartedError()
        if self.trading_ended:
            raise TradingAlreadyEndedError()
        if oracle.market_id != self.market_id:
            raise WrongMarketError(self.market_id, oracle.market_id)
        last_price = oracle.get_last_price()
        self.trading_ended = True
        self._events.emit(
            EventType.TRADING_ENDED,
            now,
            actor=self.admin,
            outcome_index=oracle.outcome_index,
            price=last_price,
        )
        logger.info(
            "Trading ended: market=%s oracle_last_price=%d", self.market_id, last_price
        )

    def finalize(self, cap: AdminCap, winner_index: int, now: int) -> None:
        self.verify_admin(cap)
        if not self.trading_ended:
            raise TradingNotEndedError()
        if self.finalized:
            raise AlreadyFinalizedError()
        self.validate_outcome(winner_index)
        self.finalized = True
        self.winning_outcome = winner_index
        self.finalization_time = now
        self._events.emit(
            EventType.MARKET_FINALIZED, now, actor=self.admin, outcome_index=winner_index
        )
        logger.info("Market finalized: market=%s winner=%d", self.market_id, winner_index)

    # ------------------------------------------------------------------
    # Guards and getters
    # ------------------------------------------------------------------

    @property
    def stage(self) -> ProposalStage:
        if self.finalized:
            return ProposalStage.FINALIZED
        if self.trading_ended:
            return ProposalStage.SETTLEMENT
        if self.trading_started:
            return ProposalStage.TRADING
        return ProposalStage.REVIEW

    def validate_outcome(self, outcome_index: int) -> None:
        if not (0 <= outcome_index < self.outcome_count):
            raise InvalidOutcomeIndexError(outcome_index, self.outcome_count)

    def is_trading_active(self) -> bool:
        return self.trading_started and not self.trading_ended

    def assert_trading_active(self) -> None:
        if not self.trading_started:
            raise TradingNotStartedError()
        if self.trading_ended:
            raise TradingAlreadyEndedError()

    def assert_not_finalized(self) -> None:
        if self.finalized:
            raise AlreadyFinalizedError()

    def assert_finalized(self) -> None:
        if not self.finalized:
            raise NotFinalizedError()

    def get_winning_outcome(self) -> int:
        if self.winning_outcome is None:
            raise NotFinalizedError()
        return self.winning_outcome

    def get_trading_end(self) -> int:
        if self.trading_end is None:
            raise TradingNotStartedError()
        return self.trading_end

    def get_trading_start(self) -> int:
        if self.trading_start is None:
            raise TradingNotStartedError()
        return self.trading_start
