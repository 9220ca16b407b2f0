"""Integration-test fixtures.

The app's ProposalService dependency is replaced per test with one driven by
a FakeClock, so lifecycle deadlines can be crossed without sleeping.
"""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from src.fm_common.engine_config import EngineConfig
from src.fm_proposal.api.router import get_proposal_service
from src.fm_proposal.application.service import ProposalService
from src.main import app
from tests.conftest import FakeClock


@pytest.fixture
def service(clock: FakeClock) -> ProposalService:
    return ProposalService(config=EngineConfig(), clock=clock)


@pytest.fixture
async def client(service: ProposalService) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh in-memory service."""
    app.dependency_overrides[get_proposal_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
