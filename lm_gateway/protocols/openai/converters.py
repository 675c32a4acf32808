"""Conversion between OpenAI chat shapes and upstream messages."""

import json
from collections.abc import Sequence
from typing import Any

from lm_gateway.platform.errors import InvalidRequestError
from lm_gateway.platform.upstream.messages import (
    ChatMessage,
    ContentPart,
    TextPart,
    ToolCall,
    ToolDefinition,
    ToolResultPart,
    ToolUsePart,
)
from lm_gateway.protocols.common import fold_system_prompt, make_tool_definition, part_text
from lm_gateway.protocols.openai.schemas import ChatCompletionMessage, Tool, ToolCallPayload


def flatten_content(content: str | list[dict[str, Any]] | None) -> str:
    """Reduce message content to text.

    Only "text" parts are kept, joined by newlines; image and other parts are
    dropped without error.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return "\n".join(part_text(part) for part in content if part.get("type") == "text")


def parse_arguments(arguments: str | dict[str, Any], tool_name: str) -> dict[str, Any]:
    if isinstance(arguments, dict):
        return arguments
    try:
        parsed = json.loads(arguments) if arguments.strip() else {}
    except json.JSONDecodeError as e:
        raise InvalidRequestError(
            f'invalid request: arguments of tool call "{tool_name}" are not valid JSON'
        ) from e
    if not isinstance(parsed, dict):
        raise InvalidRequestError(
            f'invalid request: arguments of tool call "{tool_name}" must be a JSON object'
        )
    return parsed


def to_tool_use(call: ToolCallPayload) -> ToolUsePart:
    return ToolUsePart(
        id=call.id,
        name=call.function.name,
        input=parse_arguments(call.function.arguments, call.function.name),
    )


def to_chat_messages(
    messages: Sequence[ChatCompletionMessage], system_marker: str
) -> list[ChatMessage]:
    """Convert OpenAI messages to upstream messages.

    System and developer prompts become marked user messages, tool messages
    become user messages carrying a tool result.
    """
    converted: list[ChatMessage] = []
    for message in messages:
        text = flatten_content(message.content)

        if message.role in ("system", "developer"):
            converted.append(fold_system_prompt(text, system_marker))
        elif message.role == "user":
            converted.append(ChatMessage.user(TextPart(text)))
        elif message.role == "tool":
            if not message.tool_call_id:
                raise InvalidRequestError("invalid request: tool messages require tool_call_id")
            converted.append(
                ChatMessage.user(ToolResultPart(message.tool_call_id, (TextPart(text),)))
            )
        else:
            parts: list[ContentPart] = []
            if text:
                parts.append(TextPart(text))
            parts.extend(to_tool_use(call) for call in message.tool_calls or [])
            if not parts:
                parts.append(TextPart(""))
            converted.append(ChatMessage.assistant(*parts))
    return converted


def to_tool_definitions(tools: Sequence[Tool] | None) -> list[ToolDefinition]:
    return [
        make_tool_definition(
            tool.function.name, tool.function.description, tool.function.parameters
        )
        for tool in tools or []
    ]


def from_tool_calls(tool_calls: Sequence[ToolCall]) -> list[dict[str, Any]]:
    """Render tool calls in the "tool_calls" shape; arguments are a JSON string."""
    return [
        {
            "id": call.call_id,
            "type": "function",
            "function": {
                "name": call.name,
                "arguments": json.dumps(call.input),
            },
        }
        for call in tool_calls
    ]


def parse_tool_call(payload: dict[str, Any]) -> ToolCall:
    """Read a "tool_calls" entry back into a ToolCall."""
    use = to_tool_use(ToolCallPayload.model_validate(payload))
    return ToolCall(call_id=use.id, name=use.name, input=use.input)
