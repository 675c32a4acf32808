"""Middleware for request correlation ID propagation."""

import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from lm_gateway.platform.observability.logging import correlation_id_ctx

REQUEST_ID_HEADER = "X-Request-ID"


def current_request_id() -> str:
    """The correlation id of the request being served, or a fresh one."""
    return correlation_id_ctx.get() or uuid.uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id.

    The id comes from the X-Request-ID header when the client sends one.
    It is stored for log entries, used to derive response ids, and echoed
    back in the response headers.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = correlation_id_ctx.set(correlation_id)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = correlation_id
            return response
        finally:
            correlation_id_ctx.reset(token)
