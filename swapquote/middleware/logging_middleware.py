"""
HTTP request logging middleware.

One ``http_request`` line per request. Quote endpoints report where their
figures came from through ``x-quote-provenance`` / ``x-quote-source``;
those are copied into the line, and a simulated answer is logged as a
warning even though the status is 200.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("http")

PROVENANCE_HEADER = "x-quote-provenance"
SOURCE_HEADER = "x-quote-source"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log quote requests with timing, status and quote provenance."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id", uuid.uuid4().hex[:8])

        # Quote-phase events emitted downstream carry the same request id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        status_code = 500
        quote_fields = {}

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = request_id
            if PROVENANCE_HEADER in response.headers:
                quote_fields["provenance"] = response.headers[PROVENANCE_HEADER]
                quote_fields["quote_source"] = response.headers.get(SOURCE_HEADER)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 1)

            if status_code >= 500:
                log = logger.error
            elif status_code >= 400 or quote_fields.get("provenance") == "simulated":
                log = logger.warning
            else:
                log = logger.info

            log(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                duration_ms=duration_ms,
                **quote_fields,
            )
