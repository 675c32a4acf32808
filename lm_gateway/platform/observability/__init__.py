"""Observability infrastructure module.

This module provides monitoring and error tracking:
- Structured logging with correlation IDs
- Prometheus metrics
- Bugsnag error reporting
"""

from lm_gateway.platform.observability.logging import (
    configure_logging,
    correlation_id_ctx,
    get_logger,
    log_error_response,
)
from lm_gateway.platform.observability.metrics import (
    BUCKETS,
    prometheus_middleware,
)

__all__ = [
    "BUCKETS",
    "configure_logging",
    "correlation_id_ctx",
    "get_logger",
    "log_error_response",
    "prometheus_middleware",
]
