"""Integration tests for POST /v1/messages."""

from fastapi.testclient import TestClient

from lm_gateway.platform.errors import UpstreamError
from lm_gateway.platform.upstream.messages import (
    TextFragment,
    TextPart,
    ToolCall,
    ToolCallFragment,
)

PATH = "/v1/messages"


def message_body(**overrides) -> dict:
    return {
        "model": "claude-sonnet-4",
        "max_tokens": 1024,
        "messages": [{"role": "user", "content": "Hi"}],
        **overrides,
    }


class TestMessages:
    """Tests for non-streaming messages."""

    def test_text_message(self, client: TestClient):
        """A text reply is one text block with end_turn."""
        response = client.post(PATH, json=message_body())

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "message"
        assert body["content"] == [{"type": "text", "text": "Hello world"}]
        assert body["stop_reason"] == "end_turn"
        assert body["model"] == "claude-sonnet-4"

    def test_missing_max_tokens(self, client: TestClient):
        """max_tokens is required."""
        body = message_body()
        del body["max_tokens"]

        response = client.post(PATH, json=body)

        assert response.status_code == 400
        assert response.json() == {
            "type": "error",
            "error": {
                "type": "invalid_request_error",
                "message": "invalid request: model, messages, and max_tokens are required",
            },
        }

    def test_unresolvable_model(self, client: TestClient):
        """An unknown model is a 404 not_found_error without a code field."""
        response = client.post(PATH, json=message_body(model="nonexistent-model"))

        assert response.status_code == 404
        body = response.json()
        assert body["type"] == "error"
        assert body["error"]["type"] == "not_found_error"
        assert "code" not in body["error"]

    def test_no_models(self, client: TestClient, fake_backend):
        """Zero discovered models is a 503 overloaded_error."""
        fake_backend.models = []

        response = client.post(PATH, json=message_body())

        assert response.status_code == 503
        assert response.json()["error"]["type"] == "overloaded_error"

    def test_system_prompt_folded(self, client: TestClient, fake_backend):
        """The system prompt reaches the upstream as the first, marked user message."""
        client.post(PATH, json=message_body(system=[{"type": "text", "text": "Be brief"}]))

        messages = fake_backend.requests[0][1]
        assert messages[0].content == (TextPart("[SYSTEM] Be brief"),)
        assert messages[1].content == (TextPart("Hi"),)

    def test_tool_use_only(self, client: TestClient, fake_backend):
        """A tool-call-only reply is tool_use blocks with stop_reason tool_use."""
        fake_backend.fragments = [ToolCallFragment(ToolCall("toolu_1", "lookup", {"q": "x"}))]

        response = client.post(
            PATH,
            json=message_body(
                tools=[
                    {
                        "name": "lookup",
                        "description": "Look things up",
                        "input_schema": {"type": "object"},
                    }
                ]
            ),
        )

        body = response.json()
        assert body["content"] == [
            {"type": "tool_use", "id": "toolu_1", "name": "lookup", "input": {"q": "x"}}
        ]
        assert body["stop_reason"] == "tool_use"

    def test_duplicate_tool_names(self, client: TestClient):
        """Duplicate tool names are rejected."""
        tool = {"name": "lookup", "input_schema": {"type": "object"}}

        response = client.post(PATH, json=message_body(tools=[tool, tool]))

        assert response.status_code == 400
        assert "duplicate tool name" in response.json()["error"]["message"]

    def test_malformed_tool_result(self, client: TestClient, fake_backend):
        """A tool result whose content list holds a bare string is a 400."""
        messages = [
            {"role": "user", "content": "Look it up"},
            {
                "role": "assistant",
                "content": [{"type": "tool_use", "id": "t1", "name": "lookup", "input": {}}],
            },
            {
                "role": "user",
                "content": [{"type": "tool_result", "tool_use_id": "t1", "content": ["plain"]}],
            },
        ]

        response = client.post(PATH, json=message_body(messages=messages))

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "invalid_request_error"
        assert fake_backend.requests == []

    def test_context_exceeded(self, client: TestClient, fake_backend):
        """Context overflow is a 400 invalid_request_error."""
        fake_backend.send_error = UpstreamError("ContextLengthExceeded", "too long")

        response = client.post(PATH, json=message_body())

        assert response.status_code == 400
        assert response.json()["error"] == {
            "type": "invalid_request_error",
            "message": "request exceeds context length limit",
        }


class TestMessagesStreaming:
    """Tests for streaming messages."""

    def test_stream_events(self, client: TestClient, sse_events):
        """The stream follows the block-structured event order."""
        response = client.post(PATH, json=message_body(stream=True))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        names = [name for name, _ in sse_events(response.text)]
        assert names[0] == "message_start"
        assert names[-2:] == ["message_delta", "message_stop"]

    def test_stream_with_tool_use(self, client: TestClient, fake_backend, sse_events):
        """Tool calls are sent as blocks after the text block."""
        fake_backend.fragments = [
            TextFragment("Checking"),
            ToolCallFragment(ToolCall("toolu_1", "lookup", {"q": "x"})),
        ]

        response = client.post(PATH, json=message_body(stream=True))

        events = sse_events(response.text)
        starts = [data for name, data in events if name == "content_block_start"]
        assert [start["content_block"]["type"] for start in starts] == ["text", "tool_use"]
        assert events[-2][1]["delta"]["stop_reason"] == "tool_use"

    def test_stream_error_mid_stream(self, client: TestClient, fake_backend, sse_events):
        """A mid-stream failure ends the stream with one error event."""
        fake_backend.stream_error = UpstreamError("Blocked", "filtered")

        response = client.post(PATH, json=message_body(stream=True))

        name, data = sse_events(response.text)[-1]
        assert name == "error"
        assert data == {
            "type": "error",
            "error": {"type": "permission_error", "message": "request blocked by content filter"},
        }
