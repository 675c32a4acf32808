"""Request dispatch: route by path and method, render every error once.

The dispatcher is the single entry point of the gateway's HTTP surface. It
owns the ServerState counters, maps each known path to its handler, and turns
any exception raised on the way into a protocol-shaped error response.
"""

import json
import time
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from fastapi.responses import JSONResponse, Response

from lm_gateway.platform.constants import (
    ANTHROPIC_MESSAGES_PATH,
    ANTHROPIC_VERSION_HEADER,
    CORS_HEADERS,
    HEALTH_PATH,
    MODELS_PATH,
    OPENAI_CHAT_COMPLETIONS_PATH,
)
from lm_gateway.platform.errors import (
    GatewayError,
    InternalError,
    InvalidRequestError,
    NotFoundError,
)
from lm_gateway.platform.observability import correlation_id_ctx, get_logger, log_error_response
from lm_gateway.platform.observability.metrics import ErrorLabels, record_error
from lm_gateway.platform.server.health import health_report
from lm_gateway.platform.server.state import ServerState
from lm_gateway.platform.settings import GatewaySettings
from lm_gateway.platform.upstream.protocol import ChatBackend
from lm_gateway.protocols.anthropic import MessagesHandler
from lm_gateway.protocols.common import WireProtocol, protocol_for_path
from lm_gateway.protocols.errors import ErrorResponder, render_error
from lm_gateway.protocols.handler import ChatHandler
from lm_gateway.protocols.models import model_listing
from lm_gateway.protocols.openai import ChatCompletionsHandler

logger = get_logger(__name__)


@dataclass(frozen=True)
class Exchange:
    """One inbound request as seen by a route handler."""

    path: str
    method: str
    body: bytes
    headers: Mapping[str, str]
    request_id: str
    responder: ErrorResponder


RouteHandler = Callable[[Exchange], Awaitable[Response]]


@dataclass(frozen=True)
class Route:
    method: str
    handler: RouteHandler


class Dispatcher:
    """Routes requests to the chat, models and health handlers.

    Args:
        backend: Upstream chat capability
        settings: Request handling limits
        state: Counters and status shared with the server lifecycle
    """

    def __init__(
        self,
        backend: ChatBackend,
        settings: GatewaySettings,
        state: ServerState | None = None,
    ):
        self.backend = backend
        self.settings = settings
        self.state = state or ServerState()
        self.routes: dict[str, Route] = {
            OPENAI_CHAT_COMPLETIONS_PATH: Route(
                "POST", self._chat_route(ChatCompletionsHandler(backend, settings))
            ),
            ANTHROPIC_MESSAGES_PATH: Route(
                "POST", self._chat_route(MessagesHandler(backend, settings))
            ),
            MODELS_PATH: Route("GET", self._models),
            HEALTH_PATH: Route("GET", self._health),
        }

    async def dispatch(
        self,
        path: str,
        method: str,
        body: bytes = b"",
        headers: Mapping[str, str] | None = None,
        request_id: str | None = None,
    ) -> Response:
        """Serve one request and return its response.

        Every failure becomes an error response in the wire protocol implied
        by the path. Log entries emitted while serving carry the request id.
        """
        request_id = request_id or uuid.uuid4().hex
        token = correlation_id_ctx.set(request_id)
        try:
            return await self._serve(path, method.upper(), body, headers or {}, request_id)
        finally:
            correlation_id_ctx.reset(token)

    async def _serve(
        self,
        path: str,
        method: str,
        body: bytes,
        headers: Mapping[str, str],
        request_id: str,
    ) -> Response:
        self.state.request_count += 1
        started = time.monotonic()
        exchange = Exchange(
            path=path,
            method=method,
            body=body,
            headers={name.lower(): value for name, value in headers.items()},
            request_id=request_id,
            responder=ErrorResponder(protocol_for_path(path)),
        )
        logger.info("request received", method=method, path=path)

        try:
            response = await self._route(exchange)
        except GatewayError as e:
            response = self._error_response(e, exchange)
        except Exception as e:
            logger.exception("unhandled error", method=method, path=path, error=repr(e))
            response = self._error_response(InternalError("internal server error"), exchange)

        response.headers.update(CORS_HEADERS)
        logger.info(
            "request completed",
            method=method,
            path=path,
            status=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return response

    async def _route(self, exchange: Exchange) -> Response:
        if exchange.method == "OPTIONS":
            return Response(status_code=200)

        route = self.routes.get(exchange.path)
        if route is None:
            raise NotFoundError("endpoint not found")
        if exchange.method != route.method:
            raise InvalidRequestError("method not allowed", http_status=405)
        return await route.handler(exchange)

    def _error_response(self, error: GatewayError, exchange: Exchange) -> Response:
        protocol = exchange.responder.protocol
        self.state.error_count += 1
        record_error(ErrorLabels(protocol=protocol, kind=error.kind))
        log_error_response(
            logger,
            error.http_status,
            "request failed",
            method=exchange.method,
            path=exchange.path,
            kind=error.kind,
            message=error.message,
        )
        response = exchange.responder.respond(error)
        if response is None:
            # Handlers only start a stream after their last chance to raise.
            logger.error("error raised after the response started", kind=error.kind)
            status, body = render_error(error, protocol)
            return JSONResponse(body, status_code=status)
        return response

    def _chat_route(self, handler: ChatHandler) -> RouteHandler:
        async def serve(exchange: Exchange) -> Response:
            payload = self._read_json(exchange.body)
            return await handler.handle(payload, exchange.request_id, exchange.responder)

        return serve

    def _read_json(self, body: bytes) -> dict[str, Any]:
        if len(body) > self.settings.max_body_bytes:
            raise InvalidRequestError("request body too large", http_status=413)
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidRequestError("invalid request: body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise InvalidRequestError("invalid request: body must be a JSON object")
        return payload

    async def _models(self, exchange: Exchange) -> Response:
        try:
            models = await self.backend.list_models()
        except Exception as e:
            logger.error("model discovery failed", error=repr(e))
            raise InternalError("failed to retrieve models") from e

        protocol = (
            WireProtocol.ANTHROPIC
            if ANTHROPIC_VERSION_HEADER in exchange.headers
            else WireProtocol.OPENAI
        )
        return JSONResponse(model_listing(models, protocol))

    async def _health(self, exchange: Exchange) -> Response:
        try:
            models = await self.backend.list_models()
        except Exception as e:
            logger.error("health check failed", error=repr(e))
            raise InternalError("health check failed") from e
        return JSONResponse(health_report(self.state, models))
