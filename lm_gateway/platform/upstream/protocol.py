"""Upstream chat capability protocol.

The gateway drives exactly one upstream capability. Hosts provide an
implementation of ChatBackend; LiteLLMBackend is the default one.
"""

from collections.abc import AsyncIterator, Sequence
from typing import Protocol

from lm_gateway.platform.upstream.cancellation import CancellationToken
from lm_gateway.platform.upstream.messages import (
    ChatMessage,
    ChatModel,
    ResponseFragment,
    ToolDefinition,
)


class ChatBackend(Protocol):
    """Protocol for the upstream chat-completion capability."""

    async def list_models(self) -> list[ChatModel]:
        """Discover the chat models currently available.

        Returns:
            Zero or more models, in preference order
        """
        ...

    async def send_request(
        self,
        model: ChatModel,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolDefinition],
        cancellation: CancellationToken,
    ) -> AsyncIterator[ResponseFragment]:
        """Start a chat completion.

        Awaiting this call issues the upstream request; failures that happen
        before any fragment is produced are raised here.

        Args:
            model: Target model, as returned by list_models
            messages: Conversation in upstream form
            tools: Tools the model may call
            cancellation: Signalled when the caller no longer wants the result

        Returns:
            Lazy, finite sequence of response fragments

        Raises:
            UpstreamError: When the upstream rejects the request
        """
        ...
