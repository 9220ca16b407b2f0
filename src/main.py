"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import settings
from src.fm_common.errors import AppError
from src.fm_common.response import error_response
from src.fm_gateway.middleware.request_log import RequestLogMiddleware
from src.fm_proposal.api.router import get_proposal_service
from src.fm_proposal.api.router import router as proposal_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: apply LOG_LEVEL and build the engine. Shutdown: report what is lost."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    service = get_proposal_service()
    logger.info(
        "%s started: fee_bps=%d max_impact_bps=%d twap_step_max=%d",
        settings.APP_NAME,
        service.config.fee_bps,
        service.config.max_price_impact_bps,
        service.config.twap_step_max,
    )
    yield
    # proposals are held in memory only
    open_count = len(await service.list_proposals())
    if open_count:
        logger.warning("Shutting down with %d in-memory proposals", open_count)


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.DEBUG,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, getattr(request.state, "request_id", None))
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(proposal_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
