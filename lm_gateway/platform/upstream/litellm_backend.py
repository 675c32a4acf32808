"""Upstream chat capability implemented with LiteLLM."""

import json
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any

import litellm

from lm_gateway.platform.errors import UpstreamError, UpstreamErrorCode
from lm_gateway.platform.settings import UpstreamSettings
from lm_gateway.platform.upstream.cancellation import CancellationToken
from lm_gateway.platform.upstream.messages import (
    ChatMessage,
    ChatModel,
    ResponseFragment,
    TextFragment,
    ToolCall,
    ToolCallFragment,
    ToolDefinition,
    ToolResultPart,
    ToolUsePart,
)

logger = logging.getLogger(__name__)

# Checked in order: ContextWindowExceededError and ContentPolicyViolationError
# are both BadRequestError subclasses.
_EXCEPTION_CODES: tuple[tuple[type[Exception], str], ...] = (
    (litellm.ContextWindowExceededError, UpstreamErrorCode.CONTEXT_LENGTH_EXCEEDED),
    (litellm.ContentPolicyViolationError, UpstreamErrorCode.BLOCKED),
    (litellm.AuthenticationError, UpstreamErrorCode.NO_PERMISSIONS),
    (litellm.PermissionDeniedError, UpstreamErrorCode.NO_PERMISSIONS),
    (litellm.NotFoundError, UpstreamErrorCode.NOT_FOUND),
)


def to_upstream_error(exc: Exception) -> UpstreamError:
    """Translate a LiteLLM exception into an opaque upstream failure code."""
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(exc, exc_type):
            return UpstreamError(code, str(exc))
    return UpstreamError(type(exc).__name__, str(exc))


def render_messages(messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
    """Render upstream messages as OpenAI-style chat messages for LiteLLM.

    Tool results become separate "tool" role messages placed before any text
    of the same turn, and assistant tool uses become "tool_calls".
    """
    rendered: list[dict[str, Any]] = []
    for message in messages:
        text = message.text
        tool_uses = [part for part in message.content if isinstance(part, ToolUsePart)]
        tool_results = [part for part in message.content if isinstance(part, ToolResultPart)]

        for result in tool_results:
            rendered.append(
                {
                    "role": "tool",
                    "tool_call_id": result.tool_use_id,
                    "content": result.text,
                }
            )

        if tool_uses:
            rendered.append(
                {
                    "role": "assistant",
                    "content": text or None,
                    "tool_calls": [
                        {
                            "id": use.id,
                            "type": "function",
                            "function": {"name": use.name, "arguments": json.dumps(use.input)},
                        }
                        for use in tool_uses
                    ],
                }
            )
        elif text or not tool_results:
            rendered.append({"role": message.role.value, "content": text})
    return rendered


def render_tools(tools: Sequence[ToolDefinition]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }
        for tool in tools
    ]


@dataclass
class _PendingToolCall:
    call_id: str = ""
    name: str = ""
    arguments: list[str] = field(default_factory=list)

    def complete(self) -> ToolCall:
        raw = "".join(self.arguments)
        try:
            arguments = json.loads(raw) if raw else {}
        except json.JSONDecodeError as e:
            raise UpstreamError("InvalidToolArguments", f"tool call {self.name!r}: {e}") from e
        if not isinstance(arguments, dict):
            arguments = {"value": arguments}
        return ToolCall(call_id=self.call_id, name=self.name, input=arguments)


class LiteLLMBackend:
    """ChatBackend that forwards requests through LiteLLM.

    Discoverable models come from configuration. Streamed tool-call deltas are
    accumulated and each tool call is emitted as one complete fragment once
    the upstream stream ends.
    """

    def __init__(self, settings: UpstreamSettings):
        self._settings = settings

    async def list_models(self) -> list[ChatModel]:
        return [
            ChatModel(
                id=model.id,
                family=model.family,
                vendor=model.vendor,
                name=model.name,
                max_input_tokens=model.max_input_tokens,
            )
            for model in self._settings.models
        ]

    async def send_request(
        self,
        model: ChatModel,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolDefinition],
        cancellation: CancellationToken,
    ) -> AsyncIterator[ResponseFragment]:
        kwargs: dict[str, Any] = {
            "model": model.id,
            "messages": render_messages(messages),
            "stream": True,
            "timeout": self._settings.timeout,
        }
        if tools:
            kwargs["tools"] = render_tools(tools)
        if self._settings.api_base:
            kwargs["api_base"] = self._settings.api_base
        if self._settings.api_key:
            kwargs["api_key"] = self._settings.api_key

        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            raise to_upstream_error(e) from e

        return self._fragments(response, cancellation)

    async def _fragments(
        self, response: Any, cancellation: CancellationToken
    ) -> AsyncIterator[ResponseFragment]:
        pending: dict[int, _PendingToolCall] = {}
        try:
            async for chunk in response:
                if cancellation.cancelled:
                    logger.info("upstream stream cancelled by client")
                    return
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta.content:
                    yield TextFragment(delta.content)
                for tool_delta in delta.tool_calls or []:
                    call = pending.setdefault(tool_delta.index or 0, _PendingToolCall())
                    if tool_delta.id:
                        call.call_id = tool_delta.id
                    if tool_delta.function is not None:
                        if tool_delta.function.name:
                            call.name = tool_delta.function.name
                        if tool_delta.function.arguments:
                            call.arguments.append(tool_delta.function.arguments)
        except UpstreamError:
            raise
        except Exception as e:
            raise to_upstream_error(e) from e

        for index in sorted(pending):
            yield ToolCallFragment(pending[index].complete())
