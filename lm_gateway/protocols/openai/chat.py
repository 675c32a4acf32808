"""POST /v1/chat/completions."""

from collections.abc import AsyncIterator
from typing import Any

from pydantic import ValidationError

from lm_gateway.platform.errors import GatewayError, InvalidRequestError
from lm_gateway.platform.upstream.messages import ResponseFragment
from lm_gateway.protocols.common import ResponseEcho, WireProtocol, describe_validation_error
from lm_gateway.protocols.handler import ChatHandler, ChatRequest
from lm_gateway.protocols.openai.converters import to_chat_messages, to_tool_definitions
from lm_gateway.protocols.openai.responses import assemble_completion
from lm_gateway.protocols.openai.schemas import ChatCompletionRequest
from lm_gateway.protocols.openai.streaming import encode_chat_stream

REQUIRED_FIELDS_MESSAGE = "invalid request: model and messages are required"


class ChatCompletionsHandler(ChatHandler):
    """OpenAI-style chat completions."""

    protocol = WireProtocol.OPENAI

    def parse(self, body: dict[str, Any]) -> ChatRequest:
        if not body.get("model") or not isinstance(body.get("messages"), list):
            raise InvalidRequestError(REQUIRED_FIELDS_MESSAGE)
        try:
            request = ChatCompletionRequest.model_validate(body)
        except ValidationError as e:
            raise InvalidRequestError(describe_validation_error(e)) from e

        return ChatRequest(
            model=request.model,
            messages=to_chat_messages(request.messages, self.settings.system_marker),
            tools=to_tool_definitions(request.tools),
            stream=request.stream,
        )

    def model_not_found(self, requested: str) -> GatewayError:
        return InvalidRequestError(f'model "{requested}" not available')

    def assemble(self, fragments: list[ResponseFragment], echo: ResponseEcho) -> dict[str, Any]:
        return assemble_completion(fragments, echo)

    def encode_stream(
        self, fragments: AsyncIterator[ResponseFragment], echo: ResponseEcho
    ) -> AsyncIterator[str]:
        return encode_chat_stream(fragments, echo)
