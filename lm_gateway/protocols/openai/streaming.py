"""chat.completion.chunk streaming.

One chunk per text fragment (the first also carries the role), then one
chunk holding every tool call, then an empty delta with the finish reason,
then the [DONE] sentinel.
"""

from collections.abc import AsyncIterator
from typing import Any

from lm_gateway.platform.errors import classify_upstream_error
from lm_gateway.platform.observability import get_logger
from lm_gateway.platform.upstream.messages import (
    ResponseFragment,
    TextFragment,
    ToolCall,
    ToolCallFragment,
)
from lm_gateway.protocols.common import ResponseEcho, WireProtocol, sse_frame
from lm_gateway.protocols.errors import render_error
from lm_gateway.protocols.openai.converters import from_tool_calls
from lm_gateway.protocols.openai.responses import FINISH_STOP, FINISH_TOOL_CALLS, completion_id

DONE_SENTINEL = "data: [DONE]\n\n"

logger = get_logger(__name__)


def _chunk(echo: ResponseEcho, delta: dict[str, Any], finish_reason: str | None = None) -> str:
    return sse_frame(
        {
            "id": completion_id(echo.request_id),
            "object": "chat.completion.chunk",
            "created": echo.created,
            "model": echo.model,
            "choices": [
                {
                    "index": 0,
                    "delta": delta,
                    "finish_reason": finish_reason,
                }
            ],
        }
    )


async def encode_chat_stream(
    fragments: AsyncIterator[ResponseFragment], echo: ResponseEcho
) -> AsyncIterator[str]:
    """Render fragments as chat.completion.chunk SSE frames.

    If the upstream fails mid-stream a final frame with an "error" field is
    written and the stream ends without the [DONE] sentinel.
    """
    role_sent = False
    tool_calls: list[ToolCall] = []

    try:
        async for fragment in fragments:
            if isinstance(fragment, TextFragment):
                delta: dict[str, Any] = {"content": fragment.text}
                if not role_sent:
                    delta = {"role": "assistant", **delta}
                    role_sent = True
                yield _chunk(echo, delta)
            elif isinstance(fragment, ToolCallFragment):
                tool_calls.append(fragment.tool_call)
    except Exception as e:
        error = classify_upstream_error(e)
        logger.error("stream processing error", error=repr(e), kind=error.kind)
        _, body = render_error(error, WireProtocol.OPENAI)
        yield sse_frame(body)
        return

    if tool_calls:
        delta = {
            "tool_calls": [
                {"index": index, **call}
                for index, call in enumerate(from_tool_calls(tool_calls))
            ]
        }
        if not role_sent:
            delta = {"role": "assistant", **delta}
        yield _chunk(echo, delta)

    finish_reason = FINISH_TOOL_CALLS if tool_calls else FINISH_STOP
    yield _chunk(echo, {}, finish_reason)
    yield DONE_SENTINEL
