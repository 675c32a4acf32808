"""Helpers shared by the OpenAI and Anthropic wire protocols."""

import json
import math
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from lm_gateway.platform.constants import ANTHROPIC_PATH_SEGMENT
from lm_gateway.platform.errors import InvalidRequestError
from lm_gateway.platform.upstream.messages import (
    ChatMessage,
    ResponseFragment,
    TextFragment,
    TextPart,
    ToolCall,
    ToolCallFragment,
    ToolDefinition,
    ToolResultPart,
    ToolUsePart,
)

EMPTY_OBJECT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


class WireProtocol(StrEnum):
    """The two public wire protocols served by the gateway."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


def protocol_for_path(path: str) -> WireProtocol:
    """Pick the error format for a path: Anthropic for anything under "messages"."""
    if ANTHROPIC_PATH_SEGMENT in path:
        return WireProtocol.ANTHROPIC
    return WireProtocol.OPENAI


@dataclass(frozen=True)
class ResponseEcho:
    """Per-request values echoed into response bodies.

    Attributes:
        request_id: Correlation id, used to derive the response id
        model: Model name exactly as requested by the client
        input_tokens: Estimated prompt size (see estimate_tokens)
        created: Unix timestamp of the response
    """

    request_id: str
    model: str
    input_tokens: int
    created: int = field(default_factory=lambda: int(time.time()))


@dataclass
class CollectedResponse:
    """A fully drained fragment sequence."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


def collect_fragments(fragments: Iterable[ResponseFragment]) -> CollectedResponse:
    """Concatenate text fragments and gather tool calls, both in arrival order."""
    text: list[str] = []
    collected = CollectedResponse()
    for fragment in fragments:
        if isinstance(fragment, TextFragment):
            text.append(fragment.text)
        elif isinstance(fragment, ToolCallFragment):
            collected.tool_calls.append(fragment.tool_call)
    collected.text = "".join(text)
    return collected


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up.

    This is an approximation for the usage fields only, not a tokenizer.
    """
    return math.ceil(len(text) / 4)


def conversation_text(messages: Sequence[ChatMessage]) -> str:
    """Serialize a conversation's content for token estimation."""
    chunks: list[str] = []
    for message in messages:
        for part in message.content:
            if isinstance(part, TextPart):
                chunks.append(part.text)
            elif isinstance(part, ToolResultPart):
                chunks.append(part.text)
            elif isinstance(part, ToolUsePart):
                chunks.append(json.dumps(part.input))
    return "".join(chunks)


def part_text(part: dict[str, Any]) -> str:
    """The "text" of a content part. A missing or null text is empty."""
    text = part.get("text")
    if text is None:
        return ""
    if not isinstance(text, str):
        raise InvalidRequestError('invalid request: "text" of a content part must be a string')
    return text


def fold_system_prompt(text: str, marker: str) -> ChatMessage:
    """Represent a system prompt as a marked user message.

    The upstream capability has no system role, so this is a lossy transform.
    """
    return ChatMessage.user(TextPart(f"{marker} {text}"))


def check_tool_results(messages: Sequence[ChatMessage]) -> None:
    """Every tool result must answer a tool use that appeared earlier."""
    seen: set[str] = set()
    for message in messages:
        for part in message.content:
            if isinstance(part, ToolUsePart):
                seen.add(part.id)
            elif isinstance(part, ToolResultPart) and part.tool_use_id not in seen:
                raise InvalidRequestError(
                    f"invalid request: tool result references unknown tool use id "
                    f'"{part.tool_use_id}"'
                )


def check_tool_names(tools: Sequence[ToolDefinition]) -> None:
    names: set[str] = set()
    for tool in tools:
        if tool.name in names:
            raise InvalidRequestError(f'invalid request: duplicate tool name "{tool.name}"')
        names.add(tool.name)


def make_tool_definition(
    name: str, description: str | None, schema: dict[str, Any] | None
) -> ToolDefinition:
    """Build a ToolDefinition; an absent description falls back to the tool name."""
    return ToolDefinition(
        name=name,
        description=description or name,
        input_schema=schema if schema is not None else dict(EMPTY_OBJECT_SCHEMA),
    )


def sse_frame(data: dict[str, Any] | str, event: str | None = None) -> str:
    """Format one Server-Sent Events frame."""
    payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    if event is None:
        return f"data: {payload}\n\n"
    return f"event: {event}\ndata: {payload}\n\n"


def describe_validation_error(e: ValidationError) -> str:
    """First pydantic error as a one-line invalid request message."""
    first = e.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"invalid request: {location}: {first['msg']}"
