"""OpenAI Chat Completions request shapes."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class FunctionDefinition(BaseModel):
    name: str
    description: str | None = None
    parameters: dict[str, Any] | None = None


class Tool(BaseModel):
    type: Literal["function"] = "function"
    function: FunctionDefinition


class FunctionCall(BaseModel):
    name: str
    arguments: str | dict[str, Any] = "{}"


class ToolCallPayload(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class ChatCompletionMessage(BaseModel):
    """One entry of "messages".

    Attributes:
        role: "system", "developer", "user", "assistant" or "tool"
        content: A string or a list of typed content parts
        tool_calls: Tool calls made by an assistant turn
        tool_call_id: Call this "tool" message answers
    """

    model_config = ConfigDict(extra="allow")

    role: Literal["system", "developer", "user", "assistant", "tool"]
    content: str | list[dict[str, Any]] | None = None
    tool_calls: list[ToolCallPayload] | None = None
    tool_call_id: str | None = None
    name: str | None = None


class ChatCompletionRequest(BaseModel):
    """Request body of POST /v1/chat/completions.

    Sampling parameters are accepted and ignored.
    """

    model_config = ConfigDict(extra="allow")

    model: str
    messages: list[ChatCompletionMessage]
    stream: bool = False
    tools: list[Tool] | None = None
