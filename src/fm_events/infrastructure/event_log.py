"""Append-only event log for one proposal.

Pools, oracles, the market state and the escrow all emit into the same log.
The log lives inside the proposal aggregate, so a rolled-back call also drops
the events it emitted.
"""
import logging
from collections.abc import Iterator

from src.fm_common.enums import EventType
from src.fm_events.domain.models import MarketEvent

logger = logging.getLogger(__name__)


class EventLog:
    def __init__(self, market_id: str) -> None:
        self.market_id = market_id
        self._events: list[MarketEvent] = []

    def emit(
        self,
        event_type: EventType,
        timestamp: int,
        *,
        actor: str | None = None,
        outcome_index: int | None = None,
        price: int | None = None,
        **amounts: int,
    ) -> MarketEvent:
        event = MarketEvent(
            sequence=len(self._events) + 1,
            event_type=event_type,
            market_id=self.market_id,
            timestamp=timestamp,
            actor=actor,
            outcome_index=outcome_index,
            price=price,
            amounts=amounts,
        )
        self._events.append(event)
        logger.debug(
            "event #%d %s market=%s outcome=%s %s",
            event.sequence,
            event_type.value,
            self.market_id,
            outcome_index,
            amounts,
        )
        return event

    def query(
        self, event_type: EventType | None = None, since: int = 0
    ) -> list[MarketEvent]:
        """Events with sequence > since, optionally filtered by type."""
        return [
            e
            for e in self._events
            if e.sequence > since and (event_type is None or e.event_type == event_type)
        ]

    def truncate(self, length: int) -> None:
        """Drop events past length; used when a call is rolled back."""
        del self._events[length:]

    def last(self) -> MarketEvent | None:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[MarketEvent]:
        return iter(self._events)
