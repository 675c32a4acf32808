"""Shared test fixtures.

This module provides a fake upstream backend used by both unit and
integration tests, plus a parser for Server-Sent Events bodies.
"""

import json
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

import pytest

from lm_gateway.platform.upstream.cancellation import CancellationToken
from lm_gateway.platform.upstream.messages import (
    ChatMessage,
    ChatModel,
    ResponseFragment,
    TextFragment,
    ToolDefinition,
)

GPT_MODEL = ChatModel(id="gpt-4o", family="gpt-4o", vendor="openai", name="GPT-4o")
CLAUDE_MODEL = ChatModel(
    id="claude-sonnet-4", family="claude-sonnet", vendor="anthropic", name="Claude Sonnet 4"
)


class FakeBackend:
    """In-memory ChatBackend returning canned fragments.

    This is a fake (not a mock): it implements the backend protocol with
    predictable behavior and records every request it receives.

    Attributes:
        models: Returned by list_models
        fragments: Yielded, in order, by every request
        list_error: Raised by list_models when set
        send_error: Raised when a request is started, before any fragment
        stream_error: Raised after all fragments have been yielded
    """

    def __init__(self) -> None:
        self.models: list[ChatModel] = [GPT_MODEL, CLAUDE_MODEL]
        self.fragments: list[ResponseFragment] = [TextFragment("Hello"), TextFragment(" world")]
        self.list_error: Exception | None = None
        self.send_error: Exception | None = None
        self.stream_error: Exception | None = None
        self.requests: list[tuple[ChatModel, list[ChatMessage], list[ToolDefinition]]] = []
        self.cancellations: list[CancellationToken] = []

    async def list_models(self) -> list[ChatModel]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.models)

    async def send_request(
        self,
        model: ChatModel,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolDefinition],
        cancellation: CancellationToken,
    ) -> AsyncIterator[ResponseFragment]:
        self.requests.append((model, list(messages), list(tools)))
        self.cancellations.append(cancellation)
        if self.send_error is not None:
            raise self.send_error
        return self._stream()

    async def _stream(self) -> AsyncIterator[ResponseFragment]:
        for fragment in self.fragments:
            yield fragment
        if self.stream_error is not None:
            raise self.stream_error


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Create a fake backend with two models and a two-fragment text reply."""
    return FakeBackend()


def parse_sse(body: str) -> list[tuple[str | None, Any]]:
    """Split an SSE body into (event name, data) pairs.

    JSON data is decoded; anything else (the [DONE] sentinel) is kept as text.
    """
    events: list[tuple[str | None, Any]] = []
    for frame in body.split("\n\n"):
        if not frame.strip():
            continue
        event: str | None = None
        data = ""
        for line in frame.split("\n"):
            if line.startswith("event: "):
                event = line.removeprefix("event: ")
            elif line.startswith("data: "):
                data = line.removeprefix("data: ")
        try:
            events.append((event, json.loads(data)))
        except json.JSONDecodeError:
            events.append((event, data))
    return events


@pytest.fixture
def sse_events() -> Callable[[str], list[tuple[str | None, Any]]]:
    """Parser for text/event-stream bodies."""
    return parse_sse


async def collect_frames(frames: AsyncIterator[str]) -> str:
    return "".join([frame async for frame in frames])


@pytest.fixture
def drain() -> Callable[[AsyncIterator[str]], Any]:
    """Join every frame an encoder yields into one SSE body."""
    return collect_frames


async def fragments_of(*fragments: ResponseFragment) -> AsyncIterator[ResponseFragment]:
    for fragment in fragments:
        yield fragment


@pytest.fixture
def fragment_stream() -> Callable[..., AsyncIterator[ResponseFragment]]:
    """Build an async fragment iterator from fragments."""
    return fragments_of
