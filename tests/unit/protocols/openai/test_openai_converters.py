"""Unit tests for OpenAI message conversion."""

import pytest

from lm_gateway.platform.errors import InvalidRequestError
from lm_gateway.platform.upstream.messages import (
    ChatMessage,
    Role,
    TextPart,
    ToolCall,
    ToolResultPart,
    ToolUsePart,
)
from lm_gateway.protocols.openai.converters import (
    flatten_content,
    from_tool_calls,
    parse_tool_call,
    to_chat_messages,
    to_tool_definitions,
)
from lm_gateway.protocols.openai.schemas import ChatCompletionMessage, Tool

MARKER = "[SYSTEM]"


def convert(*messages: dict) -> list[ChatMessage]:
    return to_chat_messages(
        [ChatCompletionMessage.model_validate(message) for message in messages], MARKER
    )


class TestFlattenContent:
    """Tests for flatten_content()."""

    def test_string(self):
        """String content is kept as is."""
        assert flatten_content("Hello") == "Hello"

    def test_text_parts_joined_by_newline(self):
        """Text parts are joined with newlines and other parts dropped."""
        content = [
            {"type": "text", "text": "first"},
            {"type": "image_url", "image_url": {"url": "http://example.com/a.png"}},
            {"type": "text", "text": "second"},
        ]

        assert flatten_content(content) == "first\nsecond"

    def test_none(self):
        """Missing content is empty text."""
        assert flatten_content(None) == ""

    def test_null_text_part_is_empty(self):
        """A text part with a null text contributes empty text."""
        content = [{"type": "text", "text": None}, {"type": "text", "text": "after"}]

        assert flatten_content(content) == "\nafter"

    def test_non_string_text_rejected(self):
        """A text part whose text is not a string is rejected."""
        with pytest.raises(InvalidRequestError):
            flatten_content([{"type": "text", "text": 42}])


class TestToChatMessages:
    """Tests for to_chat_messages()."""

    def test_system_folded_into_user(self):
        """System and developer prompts become marked user messages."""
        messages = convert(
            {"role": "system", "content": "Be brief"},
            {"role": "developer", "content": "No emojis"},
            {"role": "user", "content": "Hi"},
        )

        assert [message.role for message in messages] == [Role.USER, Role.USER, Role.USER]
        assert messages[0].text == "[SYSTEM] Be brief"
        assert messages[1].text == "[SYSTEM] No emojis"
        assert messages[2].text == "Hi"

    def test_assistant_tool_calls(self):
        """Assistant tool calls become tool use parts with parsed arguments."""
        messages = convert(
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "get_weather", "arguments": '{"city": "Paris"}'},
                    }
                ],
            }
        )

        assert messages == [
            ChatMessage.assistant(ToolUsePart("call_1", "get_weather", {"city": "Paris"}))
        ]

    def test_tool_message_becomes_result(self):
        """A tool message becomes a user message holding a tool result."""
        messages = convert({"role": "tool", "tool_call_id": "call_1", "content": "sunny"})

        assert messages == [ChatMessage.user(ToolResultPart("call_1", (TextPart("sunny"),)))]

    def test_tool_message_requires_call_id(self):
        """A tool message without tool_call_id is rejected."""
        with pytest.raises(InvalidRequestError):
            convert({"role": "tool", "content": "sunny"})

    def test_invalid_arguments(self):
        """Tool call arguments that are not JSON are rejected."""
        with pytest.raises(InvalidRequestError, match="not valid JSON"):
            convert(
                {
                    "role": "assistant",
                    "tool_calls": [
                        {"id": "c", "function": {"name": "f", "arguments": "{broken"}}
                    ],
                }
            )

    def test_non_object_arguments(self):
        """Tool call arguments must decode to an object."""
        with pytest.raises(InvalidRequestError, match="must be a JSON object"):
            convert(
                {
                    "role": "assistant",
                    "tool_calls": [{"id": "c", "function": {"name": "f", "arguments": "[1]"}}],
                }
            )


class TestToolDefinitions:
    """Tests for tool conversion."""

    def test_missing_parameters_default_to_empty_schema(self):
        """A function without parameters gets an empty object schema."""
        tools = to_tool_definitions([Tool.model_validate({"function": {"name": "ping"}})])

        assert tools[0].name == "ping"
        assert tools[0].description == "ping"
        assert tools[0].input_schema == {"type": "object", "properties": {}}

    def test_no_tools(self):
        """An absent tool list converts to no tools."""
        assert to_tool_definitions(None) == []


class TestToolCallRendering:
    """Tests for rendering tool calls back to the wire."""

    def test_arguments_are_json_strings(self):
        """Arguments are serialized as a JSON string."""
        rendered = from_tool_calls([ToolCall("call_1", "get_weather", {"city": "Paris"})])

        assert rendered == [
            {
                "id": "call_1",
                "type": "function",
                "function": {"name": "get_weather", "arguments": '{"city": "Paris"}'},
            }
        ]

    def test_rendered_call_reads_back(self):
        """A rendered tool call parses back to the same call."""
        call = ToolCall("call_9", "search", {"query": "docs", "limit": 3, "tags": ["a"]})

        assert parse_tool_call(from_tool_calls([call])[0]) == call
