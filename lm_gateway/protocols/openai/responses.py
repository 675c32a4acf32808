"""Non-streaming chat.completion bodies."""

from collections.abc import Sequence
from typing import Any

from lm_gateway.platform.upstream.messages import ResponseFragment
from lm_gateway.protocols.common import ResponseEcho, collect_fragments, estimate_tokens
from lm_gateway.protocols.openai.converters import from_tool_calls

FINISH_STOP = "stop"
FINISH_TOOL_CALLS = "tool_calls"


def completion_id(request_id: str) -> str:
    return f"chatcmpl-{request_id}"


def assemble_completion(
    fragments: Sequence[ResponseFragment], echo: ResponseEcho
) -> dict[str, Any]:
    """Build a chat.completion body from the whole fragment sequence.

    Usage counts are estimates (see estimate_tokens).
    """
    collected = collect_fragments(fragments)

    message: dict[str, Any] = {
        "role": "assistant",
        "content": collected.text or None,
    }
    finish_reason = FINISH_STOP
    if collected.has_tool_calls:
        message["tool_calls"] = from_tool_calls(collected.tool_calls)
        finish_reason = FINISH_TOOL_CALLS

    completion_tokens = estimate_tokens(collected.text)
    return {
        "id": completion_id(echo.request_id),
        "object": "chat.completion",
        "created": echo.created,
        "model": echo.model,
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": finish_reason,
            }
        ],
        "usage": {
            "prompt_tokens": echo.input_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": echo.input_tokens + completion_tokens,
        },
    }
