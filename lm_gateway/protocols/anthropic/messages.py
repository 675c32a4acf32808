"""POST /v1/messages."""

from collections.abc import AsyncIterator
from typing import Any

from pydantic import ValidationError

from lm_gateway.platform.errors import GatewayError, InvalidRequestError, NotFoundError
from lm_gateway.platform.upstream.messages import ResponseFragment
from lm_gateway.protocols.anthropic.converters import to_chat_messages, to_tool_definitions
from lm_gateway.protocols.anthropic.responses import assemble_message
from lm_gateway.protocols.anthropic.schemas import MessagesRequest
from lm_gateway.protocols.anthropic.streaming import encode_message_stream
from lm_gateway.protocols.common import ResponseEcho, WireProtocol, describe_validation_error
from lm_gateway.protocols.handler import ChatHandler, ChatRequest

REQUIRED_FIELDS_MESSAGE = "invalid request: model, messages, and max_tokens are required"


class MessagesHandler(ChatHandler):
    """Anthropic-style messages."""

    protocol = WireProtocol.ANTHROPIC

    def parse(self, body: dict[str, Any]) -> ChatRequest:
        if (
            not body.get("model")
            or not isinstance(body.get("messages"), list)
            or body.get("max_tokens") is None
        ):
            raise InvalidRequestError(REQUIRED_FIELDS_MESSAGE)
        try:
            request = MessagesRequest.model_validate(body)
        except ValidationError as e:
            raise InvalidRequestError(describe_validation_error(e)) from e

        return ChatRequest(
            model=request.model,
            messages=to_chat_messages(
                request.messages, request.system, self.settings.system_marker
            ),
            tools=to_tool_definitions(request.tools),
            stream=request.stream,
        )

    def model_not_found(self, requested: str) -> GatewayError:
        return NotFoundError(f'model "{requested}" not available')

    def assemble(self, fragments: list[ResponseFragment], echo: ResponseEcho) -> dict[str, Any]:
        return assemble_message(fragments, echo)

    def encode_stream(
        self, fragments: AsyncIterator[ResponseFragment], echo: ResponseEcho
    ) -> AsyncIterator[str]:
        return encode_message_stream(fragments, echo)
