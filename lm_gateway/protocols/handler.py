"""Request flow shared by both chat protocols.

parse -> discover models -> select model -> start upstream call ->
assemble a JSON body, or stream SSE frames.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, ClassVar

from fastapi.responses import JSONResponse, StreamingResponse

from lm_gateway.platform.constants import SSE_CONTENT_TYPE, SSE_HEADERS
from lm_gateway.platform.errors import (
    GatewayError,
    UnavailableError,
    classify_upstream_error,
)
from lm_gateway.platform.observability import get_logger
from lm_gateway.platform.observability.metrics import record_request, upstream_timer
from lm_gateway.platform.settings import GatewaySettings
from lm_gateway.platform.upstream.cancellation import CancellationToken
from lm_gateway.platform.upstream.channel import FragmentChannel
from lm_gateway.platform.upstream.messages import ChatMessage, ResponseFragment, ToolDefinition
from lm_gateway.platform.upstream.protocol import ChatBackend
from lm_gateway.protocols.common import (
    ResponseEcho,
    WireProtocol,
    check_tool_names,
    check_tool_results,
    conversation_text,
    estimate_tokens,
)
from lm_gateway.protocols.errors import ErrorResponder
from lm_gateway.protocols.selection import select_model

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChatRequest:
    """A wire request converted to upstream form."""

    model: str
    messages: list[ChatMessage]
    tools: list[ToolDefinition]
    stream: bool


class ChatHandler(ABC):
    """Base class for a protocol's chat endpoint."""

    protocol: ClassVar[WireProtocol]

    def __init__(self, backend: ChatBackend, settings: GatewaySettings):
        self.backend = backend
        self.settings = settings

    @abstractmethod
    def parse(self, body: dict[str, Any]) -> ChatRequest:
        """Validate a wire body and convert it to upstream form.

        Raises:
            InvalidRequestError: When required fields are missing or malformed
        """

    @abstractmethod
    def model_not_found(self, requested: str) -> GatewayError:
        """The error this protocol uses for an unresolvable model."""

    @abstractmethod
    def assemble(self, fragments: list[ResponseFragment], echo: ResponseEcho) -> dict[str, Any]:
        """Build a non-streaming response body."""

    @abstractmethod
    def encode_stream(
        self, fragments: AsyncIterator[ResponseFragment], echo: ResponseEcho
    ) -> AsyncIterator[str]:
        """Render the fragment sequence as SSE frames."""

    async def handle(
        self, body: dict[str, Any], request_id: str, responder: ErrorResponder
    ) -> JSONResponse | StreamingResponse:
        record_request(self.protocol)
        request = self.parse(body)
        check_tool_names(request.tools)
        check_tool_results(request.messages)

        models = await self.backend.list_models()
        if not models:
            raise UnavailableError("no language models available")

        model = select_model(models, request.model)
        if model is None:
            raise self.model_not_found(request.model)
        logger.debug(
            "selected model",
            model_id=model.id,
            family=model.family,
            requested_model=request.model,
            message_count=len(request.messages),
            tool_count=len(request.tools),
        )

        echo = ResponseEcho(
            request_id=request_id,
            model=request.model,
            input_tokens=estimate_tokens(conversation_text(request.messages)),
        )

        cancellation = CancellationToken()
        try:
            with upstream_timer(self.protocol):
                source = await self.backend.send_request(
                    model, request.messages, request.tools, cancellation
                )
        except Exception as e:
            error = classify_upstream_error(e)
            logger.warning("upstream request failed", error=repr(e), kind=error.kind)
            raise error from e

        channel = FragmentChannel(source, cancellation)

        if request.stream:
            responder.mark_headers_sent()
            return StreamingResponse(
                self._stream(channel, echo),
                media_type=SSE_CONTENT_TYPE,
                headers=SSE_HEADERS,
            )

        try:
            fragments = [fragment async for fragment in channel]
        except Exception as e:
            error = classify_upstream_error(e)
            logger.warning("upstream response failed", error=repr(e), kind=error.kind)
            raise error from e
        finally:
            await channel.aclose()

        response_body = self.assemble(fragments, echo)
        logger.debug("response assembled", fragment_count=len(fragments))
        return JSONResponse(response_body)

    async def _stream(self, channel: FragmentChannel, echo: ResponseEcho) -> AsyncIterator[str]:
        # Closing the channel on early exit (client disconnect) cancels the upstream call.
        try:
            async for frame in self.encode_stream(channel, echo):
                yield frame
        finally:
            if not channel.finished:
                logger.info("stream closed before upstream finished, cancelling")
            await channel.aclose()
