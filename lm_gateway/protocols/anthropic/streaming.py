"""Messages streaming as an explicit block-structured state machine.

    MESSAGE_START -> TEXT_BLOCK_OPEN -> TEXT_DELTA* -> TEXT_BLOCK_CLOSE
        -> (TOOL_BLOCK_OPEN -> TOOL_BLOCK_DELTA -> TOOL_BLOCK_CLOSE)*
        -> MESSAGE_DELTA -> MESSAGE_STOP

Every transition is written as one named SSE event. Block indices increase
monotonically and are never reused. A tool call's input is sent as a single
input_json_delta holding the whole JSON object.
"""

import json
from collections.abc import AsyncIterator
from enum import StrEnum
from typing import Any

from lm_gateway.platform.errors import classify_upstream_error
from lm_gateway.platform.observability import get_logger
from lm_gateway.platform.upstream.messages import (
    ResponseFragment,
    TextFragment,
    ToolCall,
    ToolCallFragment,
)
from lm_gateway.protocols.anthropic.responses import STOP_END_TURN, STOP_TOOL_USE, message_id
from lm_gateway.protocols.common import ResponseEcho, WireProtocol, estimate_tokens, sse_frame
from lm_gateway.protocols.errors import render_error

logger = get_logger(__name__)


class StreamState(StrEnum):
    MESSAGE_START = "message_start"
    TEXT_BLOCK_OPEN = "text_block_open"
    TEXT_DELTA = "text_delta"
    TEXT_BLOCK_CLOSE = "text_block_close"
    TOOL_BLOCK_OPEN = "tool_block_open"
    TOOL_BLOCK_DELTA = "tool_block_delta"
    TOOL_BLOCK_CLOSE = "tool_block_close"
    MESSAGE_DELTA = "message_delta"
    MESSAGE_STOP = "message_stop"


EVENT_NAMES: dict[StreamState, str] = {
    StreamState.MESSAGE_START: "message_start",
    StreamState.TEXT_BLOCK_OPEN: "content_block_start",
    StreamState.TEXT_DELTA: "content_block_delta",
    StreamState.TEXT_BLOCK_CLOSE: "content_block_stop",
    StreamState.TOOL_BLOCK_OPEN: "content_block_start",
    StreamState.TOOL_BLOCK_DELTA: "content_block_delta",
    StreamState.TOOL_BLOCK_CLOSE: "content_block_stop",
    StreamState.MESSAGE_DELTA: "message_delta",
    StreamState.MESSAGE_STOP: "message_stop",
}

TRANSITIONS: dict[StreamState | None, frozenset[StreamState]] = {
    None: frozenset({StreamState.MESSAGE_START}),
    StreamState.MESSAGE_START: frozenset({StreamState.TEXT_BLOCK_OPEN}),
    StreamState.TEXT_BLOCK_OPEN: frozenset({StreamState.TEXT_DELTA, StreamState.TEXT_BLOCK_CLOSE}),
    StreamState.TEXT_DELTA: frozenset({StreamState.TEXT_DELTA, StreamState.TEXT_BLOCK_CLOSE}),
    StreamState.TEXT_BLOCK_CLOSE: frozenset(
        {StreamState.TOOL_BLOCK_OPEN, StreamState.MESSAGE_DELTA}
    ),
    StreamState.TOOL_BLOCK_OPEN: frozenset({StreamState.TOOL_BLOCK_DELTA}),
    StreamState.TOOL_BLOCK_DELTA: frozenset({StreamState.TOOL_BLOCK_CLOSE}),
    StreamState.TOOL_BLOCK_CLOSE: frozenset(
        {StreamState.TOOL_BLOCK_OPEN, StreamState.MESSAGE_DELTA}
    ),
    StreamState.MESSAGE_DELTA: frozenset({StreamState.MESSAGE_STOP}),
    StreamState.MESSAGE_STOP: frozenset(),
}


class MessageStreamEncoder:
    """Drives one message stream from a fragment sequence."""

    def __init__(self, echo: ResponseEcho):
        self.echo = echo
        self.state: StreamState | None = None
        self.block_index = 0
        self._text: list[str] = []

    def _emit(self, state: StreamState, payload: dict[str, Any]) -> str:
        if state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid stream transition {self.state} -> {state}")
        self.state = state
        return sse_frame(payload, event=EVENT_NAMES[state])

    def message_start(self) -> str:
        return self._emit(
            StreamState.MESSAGE_START,
            {
                "type": "message_start",
                "message": {
                    "id": message_id(self.echo.request_id),
                    "type": "message",
                    "role": "assistant",
                    "content": [],
                    "model": self.echo.model,
                    "stop_reason": None,
                    "stop_sequence": None,
                    "usage": {"input_tokens": self.echo.input_tokens, "output_tokens": 0},
                },
            },
        )

    def open_text_block(self) -> str:
        return self._emit(
            StreamState.TEXT_BLOCK_OPEN,
            {
                "type": "content_block_start",
                "index": self.block_index,
                "content_block": {"type": "text", "text": ""},
            },
        )

    def text_delta(self, text: str) -> str:
        self._text.append(text)
        return self._emit(
            StreamState.TEXT_DELTA,
            {
                "type": "content_block_delta",
                "index": self.block_index,
                "delta": {"type": "text_delta", "text": text},
            },
        )

    def _close_block(self, state: StreamState) -> str:
        frame = self._emit(state, {"type": "content_block_stop", "index": self.block_index})
        self.block_index += 1
        return frame

    def close_text_block(self) -> str:
        return self._close_block(StreamState.TEXT_BLOCK_CLOSE)

    def tool_block(self, call: ToolCall) -> list[str]:
        return [
            self._emit(
                StreamState.TOOL_BLOCK_OPEN,
                {
                    "type": "content_block_start",
                    "index": self.block_index,
                    "content_block": {
                        "type": "tool_use",
                        "id": call.call_id,
                        "name": call.name,
                        "input": {},
                    },
                },
            ),
            self._emit(
                StreamState.TOOL_BLOCK_DELTA,
                {
                    "type": "content_block_delta",
                    "index": self.block_index,
                    "delta": {"type": "input_json_delta", "partial_json": json.dumps(call.input)},
                },
            ),
            self._close_block(StreamState.TOOL_BLOCK_CLOSE),
        ]

    def message_delta(self, stop_reason: str) -> str:
        return self._emit(
            StreamState.MESSAGE_DELTA,
            {
                "type": "message_delta",
                "delta": {"stop_reason": stop_reason, "stop_sequence": None},
                "usage": {"output_tokens": estimate_tokens("".join(self._text))},
            },
        )

    def message_stop(self) -> str:
        return self._emit(StreamState.MESSAGE_STOP, {"type": "message_stop"})

    async def encode(self, fragments: AsyncIterator[ResponseFragment]) -> AsyncIterator[str]:
        """Render fragments as SSE events.

        Tool calls are held back until the text block closes. If the upstream
        fails mid-stream one "error" event is written and the stream ends.
        """
        tool_calls: list[ToolCall] = []

        yield self.message_start()
        yield self.open_text_block()
        try:
            async for fragment in fragments:
                if isinstance(fragment, TextFragment):
                    yield self.text_delta(fragment.text)
                elif isinstance(fragment, ToolCallFragment):
                    tool_calls.append(fragment.tool_call)
        except Exception as e:
            error = classify_upstream_error(e)
            logger.error("stream processing error", error=repr(e), kind=error.kind)
            _, body = render_error(error, WireProtocol.ANTHROPIC)
            yield sse_frame(body, event="error")
            return

        yield self.close_text_block()
        for call in tool_calls:
            for frame in self.tool_block(call):
                yield frame

        yield self.message_delta(STOP_TOOL_USE if tool_calls else STOP_END_TURN)
        yield self.message_stop()


def encode_message_stream(
    fragments: AsyncIterator[ResponseFragment], echo: ResponseEcho
) -> AsyncIterator[str]:
    return MessageStreamEncoder(echo).encode(fragments)
