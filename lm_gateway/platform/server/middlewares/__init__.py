"""HTTP middleware components."""

from lm_gateway.platform.server.middlewares.correlation import (
    REQUEST_ID_HEADER,
    CorrelationIdMiddleware,
    current_request_id,
)

__all__ = [
    "CorrelationIdMiddleware",
    "REQUEST_ID_HEADER",
    "current_request_id",
]
