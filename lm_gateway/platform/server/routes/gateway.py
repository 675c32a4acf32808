"""Gateway endpoints.

/metrics is served directly for the Prometheus scraper. Every other path is
handed to the Dispatcher, which owns routing, method checks and error
rendering for both wire protocols.
"""

from enum import Enum

from fastapi import APIRouter, Depends, Request, Response

from lm_gateway.platform.constants import METRICS_PATH
from lm_gateway.platform.observability.metrics import metrics as prom_metrics
from lm_gateway.platform.server.dependencies import get_dispatcher, get_settings
from lm_gateway.platform.server.dispatcher import Dispatcher
from lm_gateway.platform.server.middlewares import current_request_id
from lm_gateway.platform.settings import Settings

gateway_router = APIRouter()
gateway_tags: list[Enum | str] = ["gateway"]

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


async def read_body(request: Request, limit: int) -> bytes:
    """Read the request body, stopping once it exceeds limit bytes.

    The result is at most one chunk longer than limit, which is enough for
    the dispatcher to reject it as too large.
    """
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            break
    return bytes(body)


@gateway_router.get(METRICS_PATH, tags=["monitoring"])
async def scrape_metrics() -> Response:
    body, media_type = prom_metrics()
    return Response(body, media_type=media_type)


# Registered after /metrics so the scrape endpoint is matched first
@gateway_router.api_route("/{path:path}", methods=ALL_METHODS, tags=gateway_tags)
async def gateway(
    request: Request,
    settings: Settings = Depends(get_settings),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> Response:
    body = await read_body(request, settings.gateway.max_body_bytes)
    return await dispatcher.dispatch(
        request.url.path,
        request.method,
        body,
        headers=request.headers,
        request_id=current_request_id(),
    )
