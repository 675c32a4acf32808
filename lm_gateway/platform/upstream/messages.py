"""Protocol-neutral message, tool and response fragment types.

These types are the vocabulary of the upstream chat capability. Both wire
protocols are converted into them on the way in, and response fragments are
rendered from them on the way out.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    """Roles understood by the upstream capability."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class TextPart:
    """A piece of plain text content."""

    text: str


@dataclass(frozen=True)
class ToolUsePart:
    """A tool invocation previously requested by the assistant.

    Attributes:
        id: Call identifier assigned by the upstream model
        name: Name of the invoked tool
        input: Structured JSON arguments
    """

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultPart:
    """The result of running a tool, sent back to the model.

    Attributes:
        tool_use_id: Identifier of the ToolUsePart this result answers
        content: Result content as ordered text parts
        is_error: Whether the tool reported a failure
    """

    tool_use_id: str
    content: tuple[TextPart, ...] = ()
    is_error: bool = False

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.content)


ContentPart = TextPart | ToolUsePart | ToolResultPart


@dataclass(frozen=True)
class ChatMessage:
    """A single conversation turn."""

    role: Role
    content: tuple[ContentPart, ...]

    @classmethod
    def user(cls, *parts: ContentPart) -> "ChatMessage":
        return cls(Role.USER, tuple(parts))

    @classmethod
    def assistant(cls, *parts: ContentPart) -> "ChatMessage":
        return cls(Role.ASSISTANT, tuple(parts))

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.content if isinstance(part, TextPart))


@dataclass(frozen=True)
class ToolDefinition:
    """A tool the model may call.

    Attributes:
        name: Tool name, unique within a request
        description: Human readable description, never empty
        input_schema: JSON Schema object describing the arguments
    """

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model in a response.

    The call_id is opaque and echoed unchanged into both wire formats.
    """

    call_id: str
    name: str
    input: dict[str, Any]


@dataclass(frozen=True)
class TextFragment:
    """Streamed piece of response text."""

    text: str


@dataclass(frozen=True)
class ToolCallFragment:
    """A complete tool call. Tool calls are never split across fragments."""

    tool_call: ToolCall


ResponseFragment = TextFragment | ToolCallFragment


@dataclass(frozen=True)
class ChatModel:
    """A chat model discovered from the upstream capability.

    Attributes:
        id: Model identifier used for exact matching
        family: Model family used for fuzzy matching (e.g. "gpt-4o")
        vendor: Model vendor, reported as owner in model listings
        name: Display name
        max_input_tokens: Context window size, if known
    """

    id: str
    family: str = ""
    vendor: str = ""
    name: str = ""
    max_input_tokens: int | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.id
