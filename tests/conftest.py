"""Shared test fixtures."""

import pytest

from src.fm_common.engine_config import EngineConfig
from src.fm_events.infrastructure.event_log import EventLog


class FakeClock:
    """Injectable millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def events() -> EventLog:
    return EventLog("mkt-1")
