"""Unit tests for non-streaming chat.completion bodies."""

from lm_gateway.platform.upstream.messages import TextFragment, ToolCall, ToolCallFragment
from lm_gateway.protocols.common import ResponseEcho
from lm_gateway.protocols.openai.responses import assemble_completion

ECHO = ResponseEcho(request_id="req1", model="gpt-4o-latest", input_tokens=7, created=1700000000)


class TestAssembleCompletion:
    """Tests for assemble_completion()."""

    def test_text_response(self):
        """Text fragments are concatenated into one message."""
        body = assemble_completion([TextFragment("Hello"), TextFragment(" world")], ECHO)

        assert body == {
            "id": "chatcmpl-req1",
            "object": "chat.completion",
            "created": 1700000000,
            "model": "gpt-4o-latest",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": "Hello world"},
                    "finish_reason": "stop",
                }
            ],
            "usage": {"prompt_tokens": 7, "completion_tokens": 3, "total_tokens": 10},
        }

    def test_tool_call_only(self):
        """A tool-call-only response has null content and finish reason tool_calls."""
        call = ToolCall("call_1", "get_weather", {"city": "Paris"})

        body = assemble_completion([ToolCallFragment(call)], ECHO)

        choice = body["choices"][0]
        assert choice["finish_reason"] == "tool_calls"
        assert choice["message"]["content"] is None
        assert choice["message"]["tool_calls"][0]["id"] == "call_1"
        assert body["usage"]["completion_tokens"] == 0

    def test_text_and_tool_calls(self):
        """Text and tool calls are both returned."""
        calls = [ToolCall("c1", "a", {}), ToolCall("c2", "b", {})]

        body = assemble_completion(
            [TextFragment("Let me check"), ToolCallFragment(calls[0]), ToolCallFragment(calls[1])],
            ECHO,
        )

        message = body["choices"][0]["message"]
        assert message["content"] == "Let me check"
        assert [call["id"] for call in message["tool_calls"]] == ["c1", "c2"]

    def test_model_is_echoed(self):
        """The requested model name is echoed, not the resolved one."""
        body = assemble_completion([], ECHO)

        assert body["model"] == "gpt-4o-latest"
        assert body["choices"][0]["message"]["content"] is None
