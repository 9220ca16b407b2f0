"""Domain models for fm_events: pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from typing import Any

from src.fm_common.enums import EventType


@dataclass(frozen=True)
class MarketEvent:
    """One append-only notification for observers and indexers."""

    sequence: int
    event_type: EventType
    market_id: str
    timestamp: int                   # ms, host clock
    actor: str | None = None
    outcome_index: int | None = None
    price: int | None = None         # resulting price, basis-point scaled
    amounts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "event_type": self.event_type.value,
            "market_id": self.market_id,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "outcome_index": self.outcome_index,
            "price": self.price,
            "amounts": dict(self.amounts),
        }
