"""Request logging middleware.

One log line per HTTP call, at a level chosen by the response status:
    INFO    [GET] /api/v1/proposals/prop-1/twaps → 200 (1ms) req_a1b2c3d4e5f6
    WARNING [POST] /api/v1/proposals/prop-1/advance → 409 (0ms) req_...

A caller-supplied X-Request-ID is reused; otherwise a short one is generated.
Either way it lands on request.state for the ApiResponse envelope and is echoed
back in the response headers.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("fm.request")

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LEN = 64


def _request_id(request: Request) -> str:
    supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if supplied and len(supplied) <= MAX_REQUEST_ID_LEN:
        return supplied
    return f"req_{uuid.uuid4().hex[:12]}"


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.log(
            _level_for(response.status_code),
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
