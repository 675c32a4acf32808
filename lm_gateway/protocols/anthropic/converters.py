"""Conversion between Anthropic message shapes and upstream messages."""

from collections.abc import Callable, Sequence
from typing import Any

from lm_gateway.platform.errors import InvalidRequestError
from lm_gateway.platform.upstream.messages import (
    ChatMessage,
    ContentPart,
    Role,
    TextPart,
    ToolCall,
    ToolDefinition,
    ToolResultPart,
    ToolUsePart,
)
from lm_gateway.protocols.anthropic.schemas import MessageParam, ToolSpec
from lm_gateway.protocols.common import fold_system_prompt, make_tool_definition, part_text


CONTENT_SHAPE_MESSAGE = "invalid request: content must be a string or a list of content blocks"


def _require(block: dict[str, Any], key: str) -> str:
    value = block.get(key)
    if value is None:
        raise InvalidRequestError(
            f'invalid request: {block.get("type")} content block requires "{key}"'
        )
    if not isinstance(value, str):
        raise InvalidRequestError(
            f'invalid request: "{key}" of a {block.get("type")} content block must be a string'
        )
    return value


def text_fragments(content: Any) -> tuple[TextPart, ...]:
    """Tool result content as text parts. Non-text blocks are dropped."""
    if content is None:
        return ()
    if isinstance(content, str):
        return (TextPart(content),)
    if not isinstance(content, list):
        raise InvalidRequestError(CONTENT_SHAPE_MESSAGE)
    parts: list[TextPart] = []
    for block in content:
        if not isinstance(block, dict):
            raise InvalidRequestError(CONTENT_SHAPE_MESSAGE)
        if block.get("type") == "text":
            parts.append(TextPart(part_text(block)))
    return tuple(parts)


def _text_block(block: dict[str, Any]) -> TextPart:
    return TextPart(part_text(block))


def _tool_use_block(block: dict[str, Any]) -> ToolUsePart:
    tool_input = block.get("input") or {}
    if not isinstance(tool_input, dict):
        raise InvalidRequestError("invalid request: tool_use input must be an object")
    return ToolUsePart(id=_require(block, "id"), name=_require(block, "name"), input=tool_input)


def _tool_result_block(block: dict[str, Any]) -> ToolResultPart:
    return ToolResultPart(
        tool_use_id=_require(block, "tool_use_id"),
        content=text_fragments(block.get("content")),
        is_error=bool(block.get("is_error", False)),
    )


BLOCK_CONVERTERS: dict[str, Callable[[dict[str, Any]], ContentPart]] = {
    "text": _text_block,
    "tool_use": _tool_use_block,
    "tool_result": _tool_result_block,
}


def to_content_parts(content: str | list[dict[str, Any]]) -> list[ContentPart]:
    """Convert message content block by block, dropping unrecognized block types."""
    if isinstance(content, str):
        return [TextPart(content)]
    parts: list[ContentPart] = []
    for block in content:
        convert = BLOCK_CONVERTERS.get(block.get("type", ""))
        if convert is not None:
            parts.append(convert(block))
    return parts


def system_text(system: str | list[dict[str, Any]] | None) -> str:
    if system is None:
        return ""
    if isinstance(system, str):
        return system
    return "\n".join(part.text for part in text_fragments(system))


def to_chat_messages(
    messages: Sequence[MessageParam],
    system: str | list[dict[str, Any]] | None,
    system_marker: str,
) -> list[ChatMessage]:
    """Convert Anthropic messages to upstream messages.

    A top-level system prompt becomes a marked user message placed first.
    """
    converted: list[ChatMessage] = []
    prompt = system_text(system)
    if prompt:
        converted.append(fold_system_prompt(prompt, system_marker))

    for message in messages:
        converted.append(ChatMessage(Role(message.role), tuple(to_content_parts(message.content))))
    return converted


def to_tool_definitions(tools: Sequence[ToolSpec] | None) -> list[ToolDefinition]:
    return [
        make_tool_definition(tool.name, tool.description, tool.input_schema)
        for tool in tools or []
    ]


def from_tool_calls(tool_calls: Sequence[ToolCall]) -> list[dict[str, Any]]:
    """Render tool calls as tool_use content blocks."""
    return [
        {
            "type": "tool_use",
            "id": call.call_id,
            "name": call.name,
            "input": call.input,
        }
        for call in tool_calls
    ]


def parse_tool_use(block: dict[str, Any]) -> ToolCall:
    """Read a tool_use content block back into a ToolCall."""
    use = _tool_use_block(block)
    return ToolCall(call_id=use.id, name=use.name, input=use.input)
