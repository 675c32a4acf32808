"""Prometheus metrics for the gateway.

HTTP request durations are recorded by middleware. Gateway-specific counters
track requests per wire protocol and rendered errors per error kind, and a
histogram times upstream calls.
"""

from time import monotonic
from typing import NamedTuple

import prometheus_client

from lm_gateway.platform.constants import (
    ANTHROPIC_MESSAGES_PATH,
    HEALTH_PATH,
    MODELS_PATH,
    OPENAI_CHAT_COMPLETIONS_PATH,
)

GATEWAY_PATHS = frozenset(
    {OPENAI_CHAT_COMPLETIONS_PATH, ANTHROPIC_MESSAGES_PATH, MODELS_PATH, HEALTH_PATH}
)


class HTTPLabels(NamedTuple):
    method: str
    path: str
    http_status: str


class ErrorLabels(NamedTuple):
    protocol: str
    kind: str


_NXX_LUT = ["1XX", "2XX", "3XX", "4XX", "5XX"]


def http_status_nxx(status: int) -> str:
    """A coarser 2XX, 4XX, 5XX"""
    return _NXX_LUT[status // 100 - 1]


BUCKETS = (
    # log spaced, 3 per decade
    0.0002,
    0.0005,
    0.001,
    0.002,
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    60,
    120,
    float("inf"),
)


def get_path(routes, scope) -> str:
    """Label a request path without unbounded cardinality.

    Gateway paths are labelled as-is since they are served by one catch-all
    route. Other requests use the matched route template.
    """
    if scope.get("path") in GATEWAY_PATHS:
        return scope["path"]
    path = "path-not-found"
    for route in routes:
        _, matches = route.matches(scope)
        if len(matches) > 0 and "{" not in route.path:
            path = route.path
    return path


async def prometheus_middleware(request, call_next):
    """HTTP middleware that records request duration metrics.

    For streaming responses this measures time to first byte, since the
    body is produced after call_next returns.
    """
    start_time = monotonic()
    response = await call_next(request)
    elapsed_sec = monotonic() - start_time
    path = get_path(request.app.routes, request.scope)

    labels = HTTPLabels(
        method=request.method,
        path=path,
        http_status=http_status_nxx(response.status_code),
    )
    http_histogram.labels(*labels).observe(elapsed_sec)

    return response


http_histogram = prometheus_client.Histogram(
    name="http_request_duration_seconds",
    documentation="Request duration (seconds)",
    labelnames=HTTPLabels._fields,
    buckets=BUCKETS,
)

upstream_histogram = prometheus_client.Histogram(
    name="upstream_request_duration_seconds",
    documentation="Time until the upstream chat capability accepted a request (seconds)",
    labelnames=("protocol",),
    buckets=BUCKETS,
)

requests_counter = prometheus_client.Counter(
    name="gateway_requests",
    documentation="Chat requests received, by wire protocol",
    labelnames=("protocol",),
)

errors_counter = prometheus_client.Counter(
    name="gateway_errors",
    documentation="Error responses rendered, by wire protocol and error kind",
    labelnames=ErrorLabels._fields,
)


def record_request(protocol: str) -> None:
    requests_counter.labels(protocol).inc()


def record_error(labels: ErrorLabels) -> None:
    errors_counter.labels(*labels).inc()


def upstream_timer(protocol: str):
    """Context manager timing an upstream call.

    Usage:
        ```
        with upstream_timer("openai"):
            fragments = await backend.send_request(...)
        ```
    """
    return upstream_histogram.labels(protocol).time()


def metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output for the /metrics endpoint.

    Returns:
        Tuple of (metrics_body, content_type) for the HTTP response
    """
    return (
        prometheus_client.generate_latest(prometheus_client.REGISTRY),
        prometheus_client.CONTENT_TYPE_LATEST,
    )
