"""Request logging middleware.

Logs every HTTP request with method, path, status code, latency, and a
request ID for correlation. An incoming X-Request-ID (set by a proxy or the
socket layer) is reused; otherwise a short one is generated. The id is put on
request.state for ApiResponse and echoed back in the X-Request-ID header.

Log format:
    INFO [POST] /api/v1/trades -> 201 (23ms) req_a1b2c3d4e5f6
Server errors (5xx) are logged at WARNING.
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("tm.request")

REQUEST_ID_HEADER = "X-Request-ID"
# Only short printable ids are trusted from clients
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9_.\-]{1,64}$")


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s -> %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
