"""fm_proposal REST endpoints.

POST /proposals                               create and seed a proposal
GET  /proposals                               list proposals
GET  /proposals/{proposal_id}                 summary (stage, pools, escrow)
GET  /proposals/{proposal_id}/quote           price a swap without executing it
GET  /proposals/{proposal_id}/twaps           per-outcome TWAP at the current time
POST /proposals/{proposal_id}/advance         next lifecycle transition (X-Admin-Cap)
GET  /proposals/{proposal_id}/events          event log, optionally filtered
GET  /proposals/{proposal_id}/invariants      escrow invariant report

Conditional tokens are held by the host, so trading is not exposed over HTTP.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Request

from src.fm_common.enums import EventType, SwapDirection
from src.fm_common.math import U64_MAX
from src.fm_common.response import ApiResponse, success_response
from src.fm_proposal.application.schemas import CreateProposalRequest
from src.fm_proposal.application.service import ProposalService

router = APIRouter(prefix="/proposals", tags=["proposals"])

_service: ProposalService | None = None


def get_proposal_service() -> ProposalService:
    global _service
    if _service is None:
        _service = ProposalService()
    return _service


ServiceDep = Annotated[ProposalService, Depends(get_proposal_service)]


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.post("")
async def create_proposal(
    body: CreateProposalRequest, request: Request, service: ServiceDep
) -> ApiResponse:
    result = await service.create_proposal(body)
    return success_response(result.model_dump(), _request_id(request))


@router.get("")
async def list_proposals(request: Request, service: ServiceDep) -> ApiResponse:
    items = await service.list_proposals()
    return success_response([i.model_dump() for i in items], _request_id(request))


@router.get("/{proposal_id}")
async def get_proposal(proposal_id: str, request: Request, service: ServiceDep) -> ApiResponse:
    result = await service.get_summary(proposal_id)
    return success_response(result.model_dump(), _request_id(request))


@router.get("/{proposal_id}/quote")
async def quote_swap(
    proposal_id: str,
    request: Request,
    service: ServiceDep,
    outcome_index: int = Query(..., ge=0),
    direction: SwapDirection = Query(...),
    amount_in: int = Query(..., ge=1, le=U64_MAX),
) -> ApiResponse:
    result = await service.quote_swap(proposal_id, outcome_index, direction, amount_in)
    return success_response(result.model_dump(), _request_id(request))


@router.get("/{proposal_id}/twaps")
async def get_twaps(proposal_id: str, request: Request, service: ServiceDep) -> ApiResponse:
    result = await service.get_twaps(proposal_id)
    return success_response(result.model_dump(), _request_id(request))


@router.post("/{proposal_id}/advance")
async def advance_stage(
    proposal_id: str,
    request: Request,
    service: ServiceDep,
    x_admin_cap: Annotated[str, Header(min_length=1)],
) -> ApiResponse:
    result = await service.advance_stage(proposal_id, x_admin_cap)
    return success_response(result.model_dump(), _request_id(request))


@router.get("/{proposal_id}/events")
async def list_events(
    proposal_id: str,
    request: Request,
    service: ServiceDep,
    event_type: EventType | None = Query(None),
    since: int = Query(0, ge=0),
) -> ApiResponse:
    events = await service.list_events(proposal_id, event_type, since)
    return success_response([e.model_dump() for e in events], _request_id(request))


@router.get("/{proposal_id}/invariants")
async def check_invariants(
    proposal_id: str, request: Request, service: ServiceDep
) -> ApiResponse:
    result = await service.verify_invariants(proposal_id)
    return success_response(result.model_dump(), _request_id(request))
