"""Non-streaming message bodies."""

from collections.abc import Sequence
from typing import Any

from lm_gateway.platform.upstream.messages import ResponseFragment
from lm_gateway.protocols.anthropic.converters import from_tool_calls
from lm_gateway.protocols.common import ResponseEcho, collect_fragments, estimate_tokens

STOP_END_TURN = "end_turn"
STOP_TOOL_USE = "tool_use"


def message_id(request_id: str) -> str:
    return f"msg_{request_id}"


def assemble_message(fragments: Sequence[ResponseFragment], echo: ResponseEcho) -> dict[str, Any]:
    """Build a message body: one text block (if any text), then tool_use blocks.

    Usage counts are estimates (see estimate_tokens).
    """
    collected = collect_fragments(fragments)

    content: list[dict[str, Any]] = []
    if collected.text:
        content.append({"type": "text", "text": collected.text})
    content.extend(from_tool_calls(collected.tool_calls))

    return {
        "id": message_id(echo.request_id),
        "type": "message",
        "role": "assistant",
        "content": content,
        "model": echo.model,
        "stop_reason": STOP_TOOL_USE if collected.has_tool_calls else STOP_END_TURN,
        "stop_sequence": None,
        "usage": {
            "input_tokens": echo.input_tokens,
            "output_tokens": estimate_tokens(collected.text),
        },
    }
